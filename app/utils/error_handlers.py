"""
Global exception handlers for FastAPI application.

Every error body has the shape ``{"error": <public message>, "error_code": ...}``.
Exception details are logged, never returned.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.utils.exceptions import ShopAssistantException

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_CODE = {
    "VALIDATION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "NOT_FOUND": 404,
    "LLM_ERROR": 502,
}

# Client errors carry their own message; everything else gets a fixed public one
CLIENT_VISIBLE_ERROR_CODES = {"VALIDATION_ERROR", "AUTHENTICATION_ERROR", "NOT_FOUND"}

PUBLIC_MESSAGE_BY_ERROR_CODE = {
    "LLM_ERROR": "Completion provider unavailable",
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


def public_message(exc: ShopAssistantException) -> str:
    if exc.error_code in CLIENT_VISIBLE_ERROR_CODES:
        return exc.message
    return PUBLIC_MESSAGE_BY_ERROR_CODE.get(exc.error_code, INTERNAL_ERROR_MESSAGE)


def error_response(status_code: int, message: str, error_code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "error_code": error_code})


async def shop_assistant_exception_handler(
    request: Request, exc: ShopAssistantException
) -> JSONResponse:
    """Handle custom Shop Assistant exceptions."""
    status_code = STATUS_BY_ERROR_CODE.get(exc.error_code, 500)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Shop Assistant Exception: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "details": exc.details,
            "url": str(request.url),
            "method": request.method,
        }
    )
    return error_response(status_code, public_message(exc), exc.error_code or "INTERNAL_SERVER_ERROR")


async def http_exception_handler(
    request: Request, exc: Union[HTTPException, StarletteHTTPException]
) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        f"HTTP Exception: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "url": str(request.url),
            "method": request.method,
        }
    )
    return error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are a client error (400)."""
    logger.warning(
        f"Validation Error: {exc.errors()}",
        extra={
            "url": str(request.url),
            "method": request.method,
        }
    )
    return error_response(400, "Invalid request body", "VALIDATION_ERROR")


async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database exceptions that escaped the stores."""
    logger.error(
        f"Database Error: {str(exc)}",
        extra={
            "exception_type": type(exc).__name__,
            "url": str(request.url),
            "method": request.method,
        }
    )
    return error_response(500, INTERNAL_ERROR_MESSAGE, "DATABASE_ERROR")


async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle general exceptions."""
    logger.error(
        f"Unhandled Exception: {str(exc)}",
        extra={
            "exception_type": type(exc).__name__,
            "url": str(request.url),
            "method": request.method,
        },
        exc_info=True
    )
    return error_response(500, INTERNAL_ERROR_MESSAGE, "INTERNAL_SERVER_ERROR")
