"""Tests for the chat list endpoints."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlmodel import Session

from chatdeck.models.chat import Chat, ChatMessage


def _seed_chat(engine, name="Test Chat", updated=None, messages=None):
    """Insert a chat + messages directly into the test DB."""
    updated = updated or datetime.now(timezone.utc)
    with Session(engine) as session:
        chat = Chat(name=name, created_date=updated, updated_date=updated)
        session.add(chat)
        session.commit()
        session.refresh(chat)

        if messages:
            for role, body in messages:
                session.add(ChatMessage(chat_id=chat.id, role=role, body=body))
            session.commit()

        return str(chat.id)


def _refresh(client):
    """Chats seeded behind the manager's back show up after a store notification."""
    client.app.state.session_manager.repository.refresh()


def test_list_chats_empty(client):
    response = client.get("/api/chats/")
    assert response.status_code == 200
    assert response.json() == []


def test_list_chats_newest_first(client, engine):
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    a = _seed_chat(engine, "A", updated=t0 + timedelta(days=3))
    b = _seed_chat(engine, "B", updated=t0 + timedelta(days=1))
    c = _seed_chat(engine, "C", updated=t0 + timedelta(days=2), messages=[("user", "hi"), ("assistant", "hello")])
    _refresh(client)

    data = client.get("/api/chats/").json()
    assert [chat["id"] for chat in data] == [a, c, b]
    assert data[1]["last_message"]["body"] == "hello"
    assert data[0]["last_message"]["body"] == ""
    assert client.get("/api/chats/count").json() == {"count": 3}


def test_create_chat_selects_it(client):
    response = client.post("/api/chats/")
    assert response.status_code == 201
    chat = response.json()
    assert chat["gpt_model"] == "gpt-4o"
    assert chat["system_message"] == "You are a helpful assistant."
    assert chat["temperature"] == 0.8
    assert chat["new_chat"] is True

    assert client.get("/api/chats/selection").json() == {"chat_id": chat["id"]}
    listed = client.get("/api/chats/").json()
    assert listed[0]["is_active"] is True


def test_create_chat_with_default_service(client):
    persona_id = client.post(
        "/api/services/personas", json={"name": "Terse", "system_message": "You are terse."}
    ).json()["id"]
    service_id = client.post(
        "/api/services/", json={"name": "S", "model": "gpt-x", "default_persona_id": persona_id}
    ).json()["id"]
    client.put("/api/services/default", json={"service_id": service_id})

    chat = client.post("/api/chats/").json()
    assert chat["gpt_model"] == "gpt-x"
    assert chat["system_message"] == "You are terse."
    assert chat["api_service_id"] == service_id
    assert chat["persona_id"] == persona_id


def test_rename_chat(client):
    chat_id = client.post("/api/chats/").json()["id"]
    response = client.patch(f"/api/chats/{chat_id}", json={"name": "Renamed"})
    assert response.status_code == 200
    assert response.json()["status"] == "committed"
    assert client.get("/api/chats/").json()[0]["name"] == "Renamed"


def test_rename_chat_cancelled(client):
    chat_id = client.post("/api/chats/").json()["id"]
    response = client.patch(f"/api/chats/{chat_id}", json={"name": "Nope", "confirmed": False})
    assert response.json()["status"] == "cancelled"
    assert client.get("/api/chats/").json()[0]["name"] == ""


def test_rename_chat_not_found(client):
    response = client.patch(
        "/api/chats/00000000-0000-0000-0000-000000000000", json={"name": "Ghost"}
    )
    assert response.status_code == 404


def test_delete_requires_confirmation(client):
    chat_id = client.post("/api/chats/").json()["id"]
    response = client.delete(f"/api/chats/{chat_id}")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert client.get("/api/chats/count").json() == {"count": 1}


def test_delete_selected_chat(client):
    chat_id = client.post("/api/chats/").json()["id"]
    response = client.delete(f"/api/chats/{chat_id}", params={"confirmed": "true"})
    assert response.status_code == 200
    assert response.json()["status"] == "committed"
    assert client.get("/api/chats/selection").json() == {"chat_id": None}
    assert client.get("/api/chats/count").json() == {"count": 0}


def test_delete_chat_not_found(client):
    response = client.delete(
        "/api/chats/00000000-0000-0000-0000-000000000000", params={"confirmed": "true"}
    )
    assert response.status_code == 404


def test_create_failure_returns_503(client, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError

    def _fail():
        raise SQLAlchemyError("disk I/O error")

    manager = client.app.state.session_manager
    monkeypatch.setattr(manager.store.session, "commit", _fail)

    response = client.post("/api/chats/")
    assert response.status_code == 503
    assert "Error saving new chat" in response.json()["detail"]
    monkeypatch.undo()

    assert client.get("/api/chats/count").json() == {"count": 0}
    notices = client.get("/api/chats/notices").json()
    assert notices[-1]["kind"] == "create_failed"


def test_selection_endpoints(client):
    first = client.post("/api/chats/").json()["id"]
    second = client.post("/api/chats/").json()["id"]

    assert client.put("/api/chats/selection", json={"chat_id": first}).json() == {"chat_id": first}
    toggled = client.post("/api/chats/selection/toggle", json={"chat_id": second, "is_active": False})
    assert toggled.json() == {"chat_id": first}
    toggled = client.post("/api/chats/selection/toggle", json={"chat_id": first, "is_active": False})
    assert toggled.json() == {"chat_id": None}

    restored = client.post("/api/chats/selection/restore", json={"last_opened_chat_id": second})
    assert restored.json() == {"chat_id": second}


def test_restore_unknown_chat(client):
    response = client.post("/api/chats/selection/restore", json={"last_opened_chat_id": "garbage"})
    assert response.status_code == 200
    assert response.json() == {"chat_id": None}


def test_restore_from_stored_preference(client):
    chat_id = client.post("/api/chats/").json()["id"]
    client.put("/api/chats/selection", json={"chat_id": None})

    response = client.post("/api/chats/selection/restore", json={})
    assert response.json() == {"chat_id": chat_id}


def test_welcome_state(client):
    data = client.get("/api/chats/welcome").json()
    assert data == {"chats_count": 0, "api_service_is_present": False, "custom_url": False}

def test_startup_restores_last_selection(engine):
    with patch("chatdeck.core.database.engine", engine):
        from chatdeck.main import app

        with TestClient(app) as first_run:
            chat_id = first_run.post("/api/chats/").json()["id"]
            first_run.post("/api/chats/")
            first_run.put("/api/chats/selection", json={"chat_id": chat_id})

        with TestClient(app) as second_run:
            assert second_run.get("/api/chats/selection").json() == {"chat_id": chat_id}


def test_startup_ignores_deleted_last_selection(engine):
    with patch("chatdeck.core.database.engine", engine):
        from chatdeck.main import app

        with TestClient(app) as first_run:
            chat_id = first_run.post("/api/chats/").json()["id"]
            first_run.delete(f"/api/chats/{chat_id}", params={"confirmed": "true"})

        with TestClient(app) as second_run:
            assert second_run.get("/api/chats/selection").json() == {"chat_id": None}
