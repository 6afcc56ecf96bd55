from sqlmodel import SQLModel, create_engine

from chatdeck.core.config import settings

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False},
)


def init_db() -> None:
    """Create missing tables on the current engine."""
    import chatdeck.models  # noqa: F401 - ensure models are registered
    if engine.url.database:
        settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)
