"""
FastAPI dependency functions.

Long-lived resources are created by the application lifespan and kept on
``app.state``; these helpers hand them to endpoints.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from app.db.session import Database
from app.models.session import ShopSession
from app.services.chat_orchestrator import ChatOrchestrator, ShopResolver
from app.services.session_store import SessionStore
from app.services.settings_store import SettingsStore


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_chat_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


def get_settings_store(database: Database = Depends(get_database)) -> SettingsStore:
    return SettingsStore(database)


def get_session_store(database: Database = Depends(get_database)) -> SessionStore:
    return SessionStore(database)


def get_shop_resolver(orchestrator: ChatOrchestrator = Depends(get_chat_orchestrator)) -> ShopResolver:
    return orchestrator.shop_resolver


async def authenticate_shop(
    shop: str,
    authorization: Optional[str] = Header(None),
    sessions: SessionStore = Depends(get_session_store),
    resolver: ShopResolver = Depends(get_shop_resolver),
) -> ShopSession:
    """
    Authenticate the merchant for ``shop`` with ``Authorization: Bearer <token>``.

    The token must belong to a stored, unexpired session of that shop.
    """
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    return sessions.authenticate_shop(resolver.normalize(shop), token)
