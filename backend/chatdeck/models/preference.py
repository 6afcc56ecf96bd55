"""Application storage kept outside the chat entity graph."""

from sqlmodel import Field, SQLModel

DEFAULT_API_SERVICE = "default_api_service"
LAST_OPENED_CHAT_ID = "last_opened_chat_id"


class Preference(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str = Field(default="")
