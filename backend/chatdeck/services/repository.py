"""Read-side view over the entity store's chats."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from chatdeck.models.chat import Chat
from chatdeck.services.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class MessagePreview:
    body: str
    timestamp: datetime


class ChatRepository:
    """Always-current projection of the store's chats, newest update first.

    Reads never touch the database; the projection is rebuilt whenever the
    store reports a save or rollback.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store
        self._chats: list[Chat] = []
        self._by_id: dict[uuid.UUID, Chat] = {}
        self._listeners: list[Callable[[], None]] = []
        store.subscribe(self.refresh)
        self.refresh()

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Register *listener* to run after every refresh."""
        self._listeners.append(listener)

    def refresh(self) -> None:
        self._chats = self._store.query_chats()
        self._by_id = {chat.id: chat for chat in self._chats}
        logger.debug(f"Chat list refreshed ({len(self._chats)} chats)")
        for listener in list(self._listeners):
            listener()

    def list(self) -> list[Chat]:
        return list(self._chats)

    def find(self, chat_id: uuid.UUID) -> Chat | None:
        return self._by_id.get(chat_id)

    def contains(self, chat_id: uuid.UUID) -> bool:
        return chat_id in self._by_id

    def count(self) -> int:
        return len(self._chats)

    def most_recent(self) -> Chat | None:
        return self._chats[0] if self._chats else None

    def last_message(self, chat_id: uuid.UUID) -> MessagePreview:
        """Most recent message of a chat, or an empty body stamped now."""
        msg = self._store.latest_message(chat_id)
        if msg is None:
            return MessagePreview(body="", timestamp=datetime.now(timezone.utc))
        return MessagePreview(body=msg.body, timestamp=msg.timestamp)
