"""REST API for the chat list: create, rename, delete and selection."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from chatdeck.core.config import settings
from chatdeck.models.chat import Chat
from chatdeck.models.preference import DEFAULT_API_SERVICE, LAST_OPENED_CHAT_ID
from chatdeck.services.confirmation import PresetConfirmationGateway
from chatdeck.services.session_manager import SessionManager, WorkflowOutcome, WorkflowResult

router = APIRouter()
logger = logging.getLogger(__name__)


class RenameRequest(BaseModel):
    name: str | None = None
    confirmed: bool = True


class SelectionRequest(BaseModel):
    chat_id: uuid.UUID | None = None


class ToggleRequest(BaseModel):
    chat_id: uuid.UUID
    is_active: bool


class RestoreRequest(BaseModel):
    last_opened_chat_id: str | None = None


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def default_service_reference(manager: SessionManager) -> str | None:
    """Stored preference first, then the configured fallback."""
    if manager.preferences is not None:
        stored = manager.preferences.get(DEFAULT_API_SERVICE)
        if stored:
            return stored
    return settings.default_api_service


def _chat_payload(manager: SessionManager, chat: Chat) -> dict:
    preview = manager.repository.last_message(chat.id)
    return {
        "id": str(chat.id),
        "name": chat.name,
        "created_date": chat.created_date.isoformat(),
        "updated_date": chat.updated_date.isoformat(),
        "new_chat": chat.new_chat,
        "temperature": chat.temperature,
        "top_p": chat.top_p,
        "behavior": chat.behavior,
        "system_message": chat.system_message,
        "gpt_model": chat.gpt_model,
        "api_service_id": str(chat.api_service_id) if chat.api_service_id else None,
        "persona_id": str(chat.persona_id) if chat.persona_id else None,
        "is_active": manager.selected_chat_id == chat.id,
        "last_message": {
            "body": preview.body,
            "timestamp": preview.timestamp.isoformat(),
        },
    }


def _failure_detail(result: WorkflowResult) -> str:
    return result.notice.message if result.notice else "Save failed"


def _outcome_response(result: WorkflowResult, chat_id: uuid.UUID) -> dict:
    if result.outcome is WorkflowOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Chat not found")
    if result.outcome is WorkflowOutcome.FAILED:
        raise HTTPException(status_code=503, detail=_failure_detail(result))
    return {"id": str(chat_id), "status": result.outcome.value}


@router.get("/")
async def list_chats(manager: SessionManager = Depends(get_session_manager)):
    return [_chat_payload(manager, chat) for chat in manager.repository.list()]


@router.get("/count")
async def count_chats(manager: SessionManager = Depends(get_session_manager)):
    return {"count": manager.repository.count()}


@router.post("/", status_code=201)
async def create_chat(manager: SessionManager = Depends(get_session_manager)):
    result = await manager.create_chat(
        system_message_default=settings.default_system_message,
        model_default=settings.default_model,
        default_service_id=default_service_reference(manager),
    )
    if result.chat is None:
        raise HTTPException(status_code=503, detail=_failure_detail(result))
    return _chat_payload(manager, result.chat)


@router.patch("/{chat_id}")
async def rename_chat(
    chat_id: uuid.UUID,
    body: RenameRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    gateway = PresetConfirmationGateway(accepted=body.confirmed, text=body.name)
    result = await manager.rename_chat(chat_id, gateway=gateway)
    return _outcome_response(result, chat_id)


@router.delete("/{chat_id}")
async def delete_chat(
    chat_id: uuid.UUID,
    confirmed: bool = False,
    manager: SessionManager = Depends(get_session_manager),
):
    gateway = PresetConfirmationGateway(accepted=confirmed)
    result = await manager.delete_chat(chat_id, gateway=gateway)
    return _outcome_response(result, chat_id)


@router.get("/selection")
async def get_selection(manager: SessionManager = Depends(get_session_manager)):
    selected = manager.selected_chat_id
    return {"chat_id": str(selected) if selected else None}


@router.put("/selection")
async def set_selection(
    body: SelectionRequest, manager: SessionManager = Depends(get_session_manager)
):
    manager.selection_changed(body.chat_id)
    selected = manager.selected_chat_id
    return {"chat_id": str(selected) if selected else None}


@router.post("/selection/toggle")
async def toggle_selection(
    body: ToggleRequest, manager: SessionManager = Depends(get_session_manager)
):
    manager.selection_toggled(body.chat_id, body.is_active)
    selected = manager.selected_chat_id
    return {"chat_id": str(selected) if selected else None}


@router.post("/selection/restore")
async def restore_selection(
    body: RestoreRequest, manager: SessionManager = Depends(get_session_manager)
):
    last_opened = body.last_opened_chat_id
    if last_opened is None and manager.preferences is not None:
        last_opened = manager.preferences.get(LAST_OPENED_CHAT_ID)
    selected = manager.restore_last_selection(last_opened)
    return {"chat_id": str(selected) if selected else None}


@router.get("/welcome")
async def welcome(manager: SessionManager = Depends(get_session_manager)):
    state = manager.welcome_state(settings.api_url, settings.default_api_url)
    return {
        "chats_count": state.chats_count,
        "api_service_is_present": state.api_service_is_present,
        "custom_url": state.custom_url,
    }


@router.get("/notices")
async def list_notices(manager: SessionManager = Depends(get_session_manager)):
    return [
        {"kind": n.kind, "message": n.message, "created_at": n.created_at.isoformat()}
        for n in manager.notices
    ]
