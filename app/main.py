"""
Shop Chat Assistant - Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.core.config import Settings, settings
from app.db.session import Database
from app.middleware.request_context import RequestContextMiddleware
from app.prompts import PromptRegistry
from app.services.cache_service import PolicyCache
from app.services.chat_orchestrator import ChatOrchestrator
from app.services.conversation_store import ConversationStore
from app.services.settings_store import SettingsStore
from app.utils.error_handlers import (
    database_exception_handler,
    general_exception_handler,
    http_exception_handler,
    shop_assistant_exception_handler,
    validation_exception_handler,
)
from app.utils.exceptions import ShopAssistantException

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT,
)
logger = logging.getLogger(__name__)


def build_orchestrator(database: Database, policy_cache: PolicyCache) -> ChatOrchestrator:
    return ChatOrchestrator(
        conversations=ConversationStore(database),
        settings_store=SettingsStore(database),
        policy_cache=policy_cache,
        prompts=PromptRegistry(),
    )


def create_app(app_settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the application; ``database`` lets tests inject their own store."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(f"Starting {app_settings.PROJECT_NAME}...")
        db = database or Database(app_settings.DATABASE_URL, echo=app_settings.DEBUG)
        if app_settings.AUTO_CREATE_TABLES:
            db.create_all()
        policy_cache = PolicyCache(redis_url=app_settings.REDIS_URL, default_ttl=app_settings.POLICY_CACHE_TTL)

        app.state.database = db
        app.state.policy_cache = policy_cache
        app.state.orchestrator = build_orchestrator(db, policy_cache)
        try:
            yield
        finally:
            logger.info(f"Shutting down {app_settings.PROJECT_NAME}...")
            await policy_cache.close()
            if database is None:
                db.dispose()

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        description="Storefront chat assistant with streaming tool use",
        lifespan=lifespan,
        debug=app_settings.DEBUG,
    )

    # Add exception handlers
    app.add_exception_handler(ShopAssistantException, shop_assistant_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.add_middleware(RequestContextMiddleware)
    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
