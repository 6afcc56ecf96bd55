from chatdeck.models.chat import APIService, Chat, ChatMessage, Persona
from chatdeck.models.preference import Preference

__all__ = ["APIService", "Chat", "ChatMessage", "Persona", "Preference"]
