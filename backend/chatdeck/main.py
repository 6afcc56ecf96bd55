import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatdeck.core.config import settings
from chatdeck.core import database
from chatdeck.api import chats, services
from chatdeck.models.preference import LAST_OPENED_CHAT_ID
from chatdeck.services import create_session_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on debug setting
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    database.init_db()

    # One session manager per application session
    manager = create_session_manager(database.engine)
    manager.restore_last_selection(manager.preferences.get(LAST_OPENED_CHAT_ID))
    app.state.session_manager = manager

    yield

    manager.store.session.close()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chats.router, prefix="/api/chats", tags=["chats"])
app.include_router(services.router, prefix="/api/services", tags=["services"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
