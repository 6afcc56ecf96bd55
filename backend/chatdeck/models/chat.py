"""Chat, API service and persona records."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Persona(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(default="")
    color: str = Field(default="")
    system_message: str = Field(default="")
    added_date: datetime = Field(default_factory=_now)


class APIService(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(default="")
    type: str = Field(default="chatgpt")  # chatgpt | ollama | claude | ...
    url: str = Field(default="")
    model: str = Field(default="")
    added_date: datetime = Field(default_factory=_now)
    default_persona_id: Optional[uuid.UUID] = Field(default=None, foreign_key="persona.id")


class Chat(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(default="")
    created_date: datetime = Field(default_factory=_now)
    updated_date: datetime = Field(default_factory=_now, index=True)
    new_chat: bool = Field(default=True)  # created and nothing sent yet
    temperature: float = Field(default=0.8)
    top_p: float = Field(default=1.0)
    behavior: str = Field(default="default")
    new_message: str = Field(default="")  # draft in the input box
    system_message: str = Field(default="")
    gpt_model: str = Field(default="")
    api_service_id: Optional[uuid.UUID] = Field(default=None, foreign_key="apiservice.id")
    persona_id: Optional[uuid.UUID] = Field(default=None, foreign_key="persona.id")


class ChatMessage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    chat_id: uuid.UUID = Field(foreign_key="chat.id", index=True)
    role: str  # "user" | "assistant" | "system"
    body: str
    timestamp: datetime = Field(default_factory=_now)
