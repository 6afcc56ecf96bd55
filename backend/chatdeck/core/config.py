from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Chatdeck"
    debug: bool = False

    # Paths
    db_path: Path = Path(__file__).resolve().parent.parent.parent / "chatdeck.db"

    # Chat completions endpoint (only used to tell the welcome screen about custom URLs)
    default_api_url: str = "https://api.openai.com/v1/chat/completions"
    api_url: str = "https://api.openai.com/v1/chat/completions"

    # New chat defaults, used when no default service resolves
    default_model: str = "gpt-4o"
    default_system_message: str = "You are a helpful assistant."

    # Reference of the default API service, e.g. "chatdeck://APIService/<uuid>".
    # A value stored in the preferences table takes precedence.
    default_api_service: str | None = None

    # Non-fatal notices kept in memory for the UI
    max_notices: int = 50

    # Server
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "CHATDECK_",
    }


settings = Settings()
