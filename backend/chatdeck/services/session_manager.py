"""Chat session manager - owns the active selection and the create/rename/delete workflows."""

import asyncio
import logging
import uuid
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Callable, Sequence

from chatdeck.core.errors import InvariantViolation, StoreError
from chatdeck.models.chat import Chat
from chatdeck.models.preference import LAST_OPENED_CHAT_ID
from chatdeck.services.confirmation import BaseConfirmationGateway
from chatdeck.services.preferences import PreferenceStore
from chatdeck.services.repository import ChatRepository
from chatdeck.services.resolver import DefaultServiceResolver
from chatdeck.services.store import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.8
DEFAULT_TOP_P = 1.0
DEFAULT_BEHAVIOR = "default"

SelectionListener = Callable[[uuid.UUID | None], None]
Scheduler = Callable[..., Any]


class WorkflowOutcome(str, Enum):
    COMMITTED = "committed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    NOT_FOUND = "not_found"


@dataclass
class Notice:
    """Non-fatal, user-visible report of a failed workflow."""

    kind: str  # "create_failed" | "delete_failed" | "rename_failed"
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class WorkflowResult:
    outcome: WorkflowOutcome
    chat: Chat | None = None
    notice: Notice | None = None


@dataclass
class _ChatLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


@dataclass
class WelcomeState:
    chats_count: int
    api_service_is_present: bool
    custom_url: bool


class SessionManager:
    """Single owner of ``selected_chat_id``.

    Every write to the selection goes through this class. The selection is
    either None or the id of a chat present in the repository; create, rename
    and delete on the same chat id are serialized, other chats proceed
    concurrently.
    """

    def __init__(
        self,
        store: EntityStore,
        repository: ChatRepository,
        resolver: DefaultServiceResolver,
        gateway: BaseConfirmationGateway | None = None,
        preferences: PreferenceStore | None = None,
        max_notices: int = 50,
        call_soon: Scheduler | None = None,
    ) -> None:
        self._store = store
        self._repository = repository
        self._resolver = resolver
        self._gateway = gateway
        self._preferences = preferences
        self._call_soon = call_soon
        self._selected_chat_id: uuid.UUID | None = None
        self._listeners: list[SelectionListener] = []
        self._locks: dict[uuid.UUID, _ChatLock] = {}
        self.notices: deque[Notice] = deque(maxlen=max_notices)
        repository.subscribe(self._check_selection)

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def repository(self) -> ChatRepository:
        return self._repository

    @property
    def preferences(self) -> PreferenceStore | None:
        return self._preferences

    # --- Selection state ---

    @property
    def selected_chat_id(self) -> uuid.UUID | None:
        return self._selected_chat_id

    @property
    def selected_chat(self) -> Chat | None:
        if self._selected_chat_id is None:
            return None
        return self._repository.find(self._selected_chat_id)

    def subscribe(self, listener: SelectionListener) -> None:
        """Register *listener*; it receives the new selection after each change."""
        self._listeners.append(listener)

    def _set_selection(self, chat_id: uuid.UUID | None) -> None:
        if chat_id is not None and not self._repository.contains(chat_id):
            self._invariant_violated(InvariantViolation(f"Chat {chat_id} is not in the chat list"))
            chat_id = None

        if chat_id == self._selected_chat_id:
            return
        self._selected_chat_id = chat_id
        logger.debug(f"Selected chat: {chat_id}")

        if chat_id is not None and self._preferences is not None:
            self._preferences.set(LAST_OPENED_CHAT_ID, str(chat_id))
        for listener in list(self._listeners):
            listener(chat_id)

    def _invariant_violated(self, error: InvariantViolation) -> None:
        logger.error(f"Selection invariant violated, resetting selection: {error}")
        if self._selected_chat_id is not None:
            self._selected_chat_id = None
            for listener in list(self._listeners):
                listener(None)

    def _check_selection(self) -> None:
        """Repository listener: drop a selection whose chat disappeared."""
        selected = self._selected_chat_id
        if selected is not None and not self._repository.contains(selected):
            self._invariant_violated(InvariantViolation(f"Selected chat {selected} disappeared"))

    def selection_changed(self, new_selection: uuid.UUID | None) -> None:
        """Mirror an external selection gesture into the single source of truth."""
        self._set_selection(new_selection)

    def selection_toggled(self, chat_id: uuid.UUID, is_active: bool) -> None:
        """List-row toggle. Deactivating only clears the selection if it is this chat."""
        if is_active:
            self._set_selection(chat_id)
        elif self._selected_chat_id == chat_id:
            self._set_selection(None)

    def restore_last_selection(
        self, last_opened_id: str | None, chats: Sequence[Chat] | None = None
    ) -> uuid.UUID | None:
        """On cold start, reselect the last opened chat if it still exists."""
        if chats is None:
            chats = self._repository.list()
        if not last_opened_id:
            return self._selected_chat_id
        try:
            chat_id = uuid.UUID(last_opened_id)
        except ValueError:
            logger.debug(f"Ignoring malformed last opened chat id: {last_opened_id!r}")
            return self._selected_chat_id

        if any(chat.id == chat_id for chat in chats):
            self._set_selection(chat_id)
        else:
            logger.debug(f"Last opened chat {chat_id} no longer exists")
        return self._selected_chat_id

    def welcome_state(self, api_url: str, default_api_url: str) -> WelcomeState:
        return WelcomeState(
            chats_count=self._repository.count(),
            api_service_is_present=len(self._store.query_services()) > 0,
            custom_url=api_url != default_api_url,
        )

    # --- Workflows ---

    @asynccontextmanager
    async def _chat_lock(self, chat_id: uuid.UUID) -> AsyncIterator[None]:
        """Serialize workflows on one chat id; the entry lives only while in use."""
        entry = self._locks.get(chat_id)
        if entry is None:
            entry = self._locks[chat_id] = _ChatLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[chat_id]

    def _gateway_or_default(self, gateway: BaseConfirmationGateway | None) -> BaseConfirmationGateway:
        gateway = gateway or self._gateway
        if gateway is None:
            raise RuntimeError("Confirmation gateway not configured")
        return gateway

    def _report(self, kind: str, message: str) -> Notice:
        logger.error(message)
        notice = Notice(kind=kind, message=message)
        self.notices.append(notice)
        return notice

    def _defer(self, callback: Callable[..., None], *args: Any) -> None:
        if self._call_soon is not None:
            self._call_soon(callback, *args)
        else:
            asyncio.get_running_loop().call_soon(callback, *args)

    def _select_created(self, chat_id: uuid.UUID) -> None:
        if not self._repository.contains(chat_id):
            logger.debug(f"Created chat {chat_id} is gone before it could be selected")
            return
        self._set_selection(chat_id)

    async def create_chat(
        self,
        system_message_default: str,
        model_default: str,
        default_service_id: str | None,
    ) -> WorkflowResult:
        """Create, persist and (on the next tick) select a new chat.

        On a failed save the pending chat is rolled back, the selection is
        left alone and the result carries the notice.
        """
        now = datetime.now(timezone.utc)
        chat = Chat(
            id=uuid.uuid4(),
            new_chat=True,
            temperature=DEFAULT_TEMPERATURE,
            top_p=DEFAULT_TOP_P,
            behavior=DEFAULT_BEHAVIOR,
            new_message="",
            created_date=now,
            updated_date=now,
            system_message=system_message_default,
            gpt_model=model_default,
        )

        resolved = self._resolver.resolve(default_service_id)
        if resolved is not None:
            chat.api_service_id = resolved.service.id
            chat.persona_id = resolved.persona.id if resolved.persona else None
            chat.gpt_model = resolved.service.model or model_default
            if resolved.persona is not None:
                chat.system_message = resolved.persona.system_message

        # The id is fresh, so no other workflow can hold it yet
        self._store.add(chat)
        try:
            self._store.save()
        except StoreError as e:
            self._store.rollback()
            notice = self._report("create_failed", f"Error saving new chat: {e}")
            return WorkflowResult(WorkflowOutcome.FAILED, notice=notice)

        logger.info(f"Created chat {chat.id} (model={chat.gpt_model})")
        # Selecting from inside the save path would re-enter observers of the list
        self._defer(self._select_created, chat.id)
        return WorkflowResult(WorkflowOutcome.COMMITTED, chat=chat)

    async def delete_chat(
        self, chat_id: uuid.UUID, gateway: BaseConfirmationGateway | None = None
    ) -> WorkflowResult:
        gateway = self._gateway_or_default(gateway)
        async with self._chat_lock(chat_id):
            if self._repository.find(chat_id) is None:
                return WorkflowResult(WorkflowOutcome.NOT_FOUND)

            accepted = await gateway.confirm(
                "Delete chat?",
                "Are you sure you want to delete this chat?",
                "Delete",
                "Cancel",
            )
            if not accepted:
                return WorkflowResult(WorkflowOutcome.CANCELLED)

            chat = self._repository.find(chat_id)
            if chat is None:
                return WorkflowResult(WorkflowOutcome.NOT_FOUND)

            # Never let the selection point at a chat that is being deleted
            if self._selected_chat_id == chat_id:
                self._set_selection(None)

            self._store.delete(chat)
            try:
                self._store.save()
            except StoreError as e:
                self._store.rollback()
                notice = self._report("delete_failed", f"Error deleting chat: {e}")
                return WorkflowResult(WorkflowOutcome.FAILED, notice=notice)

        logger.info(f"Deleted chat {chat_id}")
        return WorkflowResult(WorkflowOutcome.COMMITTED)

    async def rename_chat(
        self, chat_id: uuid.UUID, gateway: BaseConfirmationGateway | None = None
    ) -> WorkflowResult:
        """Ask for a new name and save it. A failed save restores the old name."""
        gateway = self._gateway_or_default(gateway)
        async with self._chat_lock(chat_id):
            chat = self._repository.find(chat_id)
            if chat is None:
                return WorkflowResult(WorkflowOutcome.NOT_FOUND)

            result = await gateway.prompt_text(
                "Rename chat",
                "Enter new name for this chat",
                chat.name,
                "Rename",
                "Cancel",
            )
            if not result.accepted:
                return WorkflowResult(WorkflowOutcome.CANCELLED)

            chat = self._repository.find(chat_id)
            if chat is None:
                return WorkflowResult(WorkflowOutcome.NOT_FOUND)

            chat.name = result.text
            self._store.add(chat)
            try:
                self._store.save()
            except StoreError as e:
                self._store.rollback()
                notice = self._report("rename_failed", f"Error renaming chat: {e}")
                return WorkflowResult(WorkflowOutcome.FAILED, notice=notice)

        logger.debug(f"Renamed chat {chat_id}")
        return WorkflowResult(WorkflowOutcome.COMMITTED, chat=chat)
