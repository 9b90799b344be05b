"""
Request context middleware: request ids and CORS headers for the chat paths.
"""

import time
import uuid
from typing import Callable, Dict, Iterable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

CHAT_PATHS = ("/api/chat", "/apps/chatbot/chat")


def cors_headers(request: Request) -> Dict[str, str]:
    """Permissive CORS headers mirroring the request's Origin."""
    return {
        "Access-Control-Allow-Origin": request.headers.get("Origin") or "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": "86400",
    }


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Stamps ``X-Request-ID`` and adds the allow-origin header to chat responses."""

    def __init__(self, app, chat_paths: Iterable[str] = CHAT_PATHS):
        super().__init__(app)
        self.chat_paths = tuple(chat_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        if request.url.path in self.chat_paths and "access-control-allow-origin" not in response.headers:
            response.headers["Access-Control-Allow-Origin"] = cors_headers(request)["Access-Control-Allow-Origin"]

        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {time.time() - start_time:.3f}s [{request_id}]"
        )
        return response
