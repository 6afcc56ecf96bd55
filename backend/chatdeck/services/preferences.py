"""Key/value application storage (default service, last opened chat)."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlmodel import Session

from chatdeck.models.preference import Preference

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Stores preferences in their own short-lived sessions.

    Kept apart from the entity store so writing a preference never commits
    pending chat edits.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, key: str, default: str | None = None) -> str | None:
        with Session(self._engine) as session:
            pref = session.get(Preference, key)
            return pref.value if pref else default

    def set(self, key: str, value: str | None) -> None:
        """Store *value* under *key*; None removes the key."""
        try:
            with Session(self._engine) as session:
                pref = session.get(Preference, key)
                if value is None:
                    if pref:
                        session.delete(pref)
                elif pref:
                    pref.value = value
                    session.add(pref)
                else:
                    session.add(Preference(key=key, value=value))
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Could not store preference {key}: {e}")
