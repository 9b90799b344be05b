"""
Chat endpoints: the direct API and the Shopify app-proxy path.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.api.streaming import open_event_stream
from app.core.dependencies import get_chat_orchestrator
from app.middleware.request_context import cors_headers
from app.schemas.chat import ChatRequest
from app.services.chat_orchestrator import ChatOrchestrator

router = APIRouter()


def wants_event_stream(request: Request) -> bool:
    return "text/event-stream" in request.headers.get("Accept", "")


@router.options("/api/chat", include_in_schema=False)
@router.options("/apps/chatbot/chat", include_in_schema=False)
async def chat_preflight(request: Request):
    """CORS preflight."""
    return Response(status_code=204, headers=cors_headers(request))


@router.get("/apps/chatbot/chat")
async def chat_status():
    """Liveness check for the app proxy."""
    return {"status": "ok", "message": "Chat API is running"}


@router.post("/api/chat")
@router.post("/apps/chatbot/chat")
async def chat(
    request: Request,
    body: ChatRequest,
    x_shopify_shop_domain: Optional[str] = Header(None),
    orchestrator: ChatOrchestrator = Depends(get_chat_orchestrator),
):
    """
    Send a customer message.

    With ``Accept: text/event-stream`` the reply streams as SSE frames
    ``data: {"type", "data"}`` followed by ``data: [DONE]``. Otherwise the
    full reply is returned as ``{conversationId, message, toolResults}``.
    """
    ctx = await orchestrator.prepare_turn(
        body,
        header_domain=x_shopify_shop_domain,
        query_shop=request.query_params.get("shop"),
    )

    if wants_event_stream(request):
        logger.info(f"Streaming reply for conversation {ctx.conversation_id}")

        async def produce(send):
            await orchestrator.stream_turn(ctx, send)

        return open_event_stream(produce, headers=cors_headers(request), name=ctx.conversation_id)

    reply = await orchestrator.run_buffered(ctx)
    return JSONResponse(content=reply.to_wire(), headers=cors_headers(request))
