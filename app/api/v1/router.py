"""
Main API router.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import chat, health, settings

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(chat.router, tags=["Chat"])
api_router.include_router(settings.router, prefix="/api/settings", tags=["Settings"])
