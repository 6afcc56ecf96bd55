"""Default API service resolution for new chats."""

import logging
from dataclasses import dataclass

from chatdeck.core.errors import StaleReferenceError
from chatdeck.models.chat import APIService, Persona
from chatdeck.services.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class ResolvedService:
    service: APIService
    persona: Persona | None = None


class DefaultServiceResolver:
    """Turns the configured default-service reference into live records.

    The reference is stored apart from the entity graph and can go stale.
    Anything that does not resolve yields None so chat creation can fall back
    to the baseline defaults.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def resolve(self, default_service_id: str | None) -> ResolvedService | None:
        if not default_service_id:
            return None

        try:
            entity = self._store.resolve_reference(default_service_id)
        except StaleReferenceError as e:
            logger.warning(f"Default API service not found: {e}")
            return None

        if not isinstance(entity, APIService):
            logger.warning(f"Default API service not found: {default_service_id}")
            return None

        persona = None
        if entity.default_persona_id is not None:
            persona = self._store.get(Persona, entity.default_persona_id)
            if persona is None:
                logger.debug(f"Default persona of service {entity.id} no longer exists")

        return ResolvedService(service=entity, persona=persona)
