"""Session manager factory."""

from sqlalchemy.engine import Engine
from sqlmodel import Session

from chatdeck.core.config import settings
from chatdeck.services.confirmation import BaseConfirmationGateway
from chatdeck.services.preferences import PreferenceStore
from chatdeck.services.repository import ChatRepository
from chatdeck.services.resolver import DefaultServiceResolver
from chatdeck.services.session_manager import SessionManager
from chatdeck.services.store import EntityStore


def create_session_manager(
    engine: Engine, gateway: BaseConfirmationGateway | None = None
) -> SessionManager:
    """Wire one session manager for one application session."""
    store = EntityStore(Session(engine))
    return SessionManager(
        store=store,
        repository=ChatRepository(store),
        resolver=DefaultServiceResolver(store),
        gateway=gateway,
        preferences=PreferenceStore(engine),
        max_notices=settings.max_notices,
    )
