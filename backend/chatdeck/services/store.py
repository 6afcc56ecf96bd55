"""Entity store adapter - transactional access to chat records over one SQLModel session."""

import logging
import uuid
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from chatdeck.core.errors import StaleReferenceError, StoreError
from chatdeck.models.chat import APIService, Chat, ChatMessage, Persona

logger = logging.getLogger(__name__)

REFERENCE_SCHEME = "chatdeck://"

# Tables that can be addressed by a reference identifier
_REFERENCE_MODELS: dict[str, type[SQLModel]] = {
    "APIService": APIService,
    "Persona": Persona,
    "Chat": Chat,
}

ChangeListener = Callable[[], None]
_E = TypeVar("_E", bound=SQLModel)


class EntityStore:
    """Wraps a long-lived session the way a UI keeps one view context.

    Mutations stay pending until ``save()``. Listeners are told about every
    committed save and every rollback so read-side views can refresh.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def add(self, entity: SQLModel) -> None:
        self.session.add(entity)

    def get(self, model: type[_E], entity_id: uuid.UUID) -> _E | None:
        return self.session.get(model, entity_id)

    def query_chats(self) -> list[Chat]:
        # id as secondary key keeps equal timestamps in a stable order
        return list(
            self.session.exec(
                select(Chat).order_by(Chat.updated_date.desc(), Chat.id)  # type: ignore
            ).all()
        )

    def query_services(self) -> list[APIService]:
        return list(
            self.session.exec(
                select(APIService).order_by(APIService.added_date.desc())  # type: ignore
            ).all()
        )

    def query_personas(self) -> list[Persona]:
        return list(
            self.session.exec(
                select(Persona).order_by(Persona.added_date.desc())  # type: ignore
            ).all()
        )

    def latest_message(self, chat_id: uuid.UUID) -> ChatMessage | None:
        return self.session.exec(
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.timestamp.desc(), ChatMessage.id.desc())  # type: ignore
            .limit(1)
        ).first()

    def delete(self, entity: SQLModel) -> None:
        """Mark *entity* for removal. Takes effect on the next save."""
        if isinstance(entity, Chat):
            # Messages go with their chat
            messages = self.session.exec(
                select(ChatMessage).where(ChatMessage.chat_id == entity.id)
            ).all()
            for msg in messages:
                self.session.delete(msg)
        self.session.delete(entity)

    def save(self) -> None:
        """Commit all pending mutations. Raises StoreError on failure."""
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Store save failed: {e}")
            raise StoreError(str(e)) from e
        self._notify()

    def rollback(self) -> None:
        """Discard pending mutations since the last save."""
        self.session.rollback()
        self._notify()

    def reference_for(self, entity: SQLModel) -> str:
        name = type(entity).__name__
        if name not in _REFERENCE_MODELS:
            raise ValueError(f"{name} records cannot be referenced")
        return f"{REFERENCE_SCHEME}{name}/{entity.id}"  # type: ignore[attr-defined]

    def resolve_reference(self, identifier: str) -> SQLModel | None:
        """Turn a reference identifier into a live record.

        Returns None when the record no longer exists. Raises
        StaleReferenceError when the identifier cannot be parsed.
        """
        if not identifier.startswith(REFERENCE_SCHEME):
            raise StaleReferenceError(f"Unknown reference scheme: {identifier!r}")
        kind, _, raw_id = identifier[len(REFERENCE_SCHEME):].partition("/")
        model = _REFERENCE_MODELS.get(kind)
        if model is None:
            raise StaleReferenceError(f"Unknown entity kind in reference: {identifier!r}")
        try:
            entity_id = uuid.UUID(raw_id)
        except ValueError as e:
            raise StaleReferenceError(f"Malformed id in reference: {identifier!r}") from e
        try:
            return self.session.get(model, entity_id)
        except SQLAlchemyError as e:
            raise StaleReferenceError(f"Could not load {identifier!r}: {e}") from e
