"""REST API for API service and persona records, and the default service preference."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from chatdeck.api.chats import default_service_reference, get_session_manager
from chatdeck.core.errors import StoreError
from chatdeck.models.chat import APIService, Persona
from chatdeck.models.preference import DEFAULT_API_SERVICE
from chatdeck.services.session_manager import SessionManager

router = APIRouter()


class PersonaCreate(BaseModel):
    name: str
    system_message: str
    color: str = ""


class ServiceCreate(BaseModel):
    name: str
    model: str
    type: str = "chatgpt"
    url: str = ""
    default_persona_id: uuid.UUID | None = None


class DefaultServiceUpdate(BaseModel):
    service_id: uuid.UUID | None = None


def _save(manager: SessionManager) -> None:
    try:
        manager.store.save()
    except StoreError as e:
        manager.store.rollback()
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/")
async def list_services(manager: SessionManager = Depends(get_session_manager)):
    return [
        {
            "id": str(s.id),
            "reference": manager.store.reference_for(s),
            "name": s.name,
            "type": s.type,
            "url": s.url,
            "model": s.model,
            "added_date": s.added_date.isoformat(),
            "default_persona_id": str(s.default_persona_id) if s.default_persona_id else None,
        }
        for s in manager.store.query_services()
    ]


@router.post("/", status_code=201)
async def create_service(
    body: ServiceCreate, manager: SessionManager = Depends(get_session_manager)
):
    if body.default_persona_id and manager.store.get(Persona, body.default_persona_id) is None:
        raise HTTPException(status_code=404, detail="Persona not found")

    service = APIService(
        name=body.name,
        type=body.type,
        url=body.url,
        model=body.model,
        default_persona_id=body.default_persona_id,
    )
    manager.store.add(service)
    _save(manager)
    return {"id": str(service.id), "reference": manager.store.reference_for(service)}


@router.get("/personas")
async def list_personas(manager: SessionManager = Depends(get_session_manager)):
    return [
        {
            "id": str(p.id),
            "name": p.name,
            "color": p.color,
            "system_message": p.system_message,
        }
        for p in manager.store.query_personas()
    ]


@router.post("/personas", status_code=201)
async def create_persona(
    body: PersonaCreate, manager: SessionManager = Depends(get_session_manager)
):
    persona = Persona(name=body.name, system_message=body.system_message, color=body.color)
    manager.store.add(persona)
    _save(manager)
    return {"id": str(persona.id)}


@router.get("/default")
async def get_default_service(manager: SessionManager = Depends(get_session_manager)):
    return {"reference": default_service_reference(manager)}


@router.put("/default")
async def set_default_service(
    body: DefaultServiceUpdate, manager: SessionManager = Depends(get_session_manager)
):
    if manager.preferences is None:
        raise HTTPException(status_code=503, detail="Preferences are not available")

    if body.service_id is None:
        manager.preferences.set(DEFAULT_API_SERVICE, None)
        return {"reference": None}

    service = manager.store.get(APIService, body.service_id)
    if service is None:
        raise HTTPException(status_code=404, detail="API service not found")
    reference = manager.store.reference_for(service)
    manager.preferences.set(DEFAULT_API_SERVICE, reference)
    return {"reference": reference}


@router.delete("/{service_id}")
async def delete_service(
    service_id: uuid.UUID, manager: SessionManager = Depends(get_session_manager)
):
    service = manager.store.get(APIService, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="API service not found")

    # Chats keep their own model and prompt
    for chat in manager.repository.list():
        if chat.api_service_id == service_id:
            chat.api_service_id = None
            manager.store.add(chat)

    manager.store.delete(service)
    _save(manager)
    return {"status": "deleted"}
