"""Confirmation gateway interface. The host UI implements this to ask the user."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class TextPromptResult:
    accepted: bool
    text: str = ""


class BaseConfirmationGateway(ABC):
    @abstractmethod
    async def confirm(self, title: str, message: str, ok_label: str, cancel_label: str) -> bool:
        """Ask a yes/no question. Returns True when the user accepts."""
        ...

    @abstractmethod
    async def prompt_text(
        self,
        title: str,
        message: str,
        initial_value: str,
        ok_label: str,
        cancel_label: str,
    ) -> TextPromptResult:
        """Ask for free text pre-filled with *initial_value*."""
        ...


class PresetConfirmationGateway(BaseConfirmationGateway):
    """Answers with a decision the client already collected.

    HTTP clients show their own dialog and send the outcome with the request.
    A text answer of None keeps the pre-filled value.
    """

    def __init__(self, accepted: bool, text: str | None = None) -> None:
        self.accepted = accepted
        self.text = text
        self.prompts: list[str] = []

    async def confirm(self, title: str, message: str, ok_label: str, cancel_label: str) -> bool:
        self.prompts.append(title)
        return self.accepted

    async def prompt_text(
        self,
        title: str,
        message: str,
        initial_value: str,
        ok_label: str,
        cancel_label: str,
    ) -> TextPromptResult:
        self.prompts.append(title)
        if not self.accepted:
            return TextPromptResult(accepted=False)
        return TextPromptResult(
            accepted=True,
            text=initial_value if self.text is None else self.text,
        )
