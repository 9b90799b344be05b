"""
Unit tests for the SSE transport.
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.api.streaming import (
    DONE_MARKER,
    EventChannel,
    decode_event,
    encode_event,
    open_event_stream,
    run_producer,
)
from app.schemas.chat import DoneEvent, TextEvent, done_event, text_event, tool_call_event, tool_error_event


async def drain(channel: EventChannel):
    return [frame async for frame in channel.frames()]


@pytest.mark.unit
class TestEventCodec:
    """Frame encoding."""

    def test_text_frame_shape(self):
        frame = encode_event(text_event("Hello"))
        assert frame == 'data: {"type": "text", "data": {"content": "Hello"}}\n\n'

    def test_done_frame_uses_wire_names(self):
        frame = encode_event(done_event("conv-1"))
        payload = json.loads(frame[len("data: "):])
        assert payload == {"type": "done", "data": {"conversationId": "conv-1"}}

    def test_decode_frame(self):
        event = decode_event(encode_event(tool_call_event("get_cart", {})))
        assert event.type == "tool_call"
        assert event.data.tool == "get_cart"

        assert isinstance(decode_event({"type": "text", "data": {"content": "hi"}}), TextEvent)
        assert decode_event(f"data: {DONE_MARKER}\n\n") is None

    def test_non_ascii_text_kept(self):
        frame = encode_event(text_event("Größe 42 ✓"))
        assert "Größe 42 ✓" in frame
        assert decode_event(frame).data.content == "Größe 42 ✓"


@pytest.mark.unit
class TestEventChannel:
    """Channel lifecycle."""

    @pytest.mark.asyncio
    async def test_successful_producer_ends_with_done_marker(self):
        channel = EventChannel("test")

        async def producer(send):
            send(text_event("Hi"))
            send(done_event("conv-1"))

        await run_producer(channel, producer)
        frames = await drain(channel)

        assert len(frames) == 3
        assert isinstance(decode_event(frames[1]), DoneEvent)
        assert frames[-1] == f"data: {DONE_MARKER}\n\n"
        assert channel.closed

    @pytest.mark.asyncio
    async def test_failing_producer_writes_error_frame(self):
        channel = EventChannel("test")

        async def producer(send):
            send(text_event("partial"))
            raise RuntimeError("boom")

        await run_producer(channel, producer)
        frames = await drain(channel)

        assert frames[-1] == 'event: error\ndata: {"error": "Internal server error"}\n\n'
        assert all(DONE_MARKER not in frame for frame in frames)

    @pytest.mark.asyncio
    async def test_send_after_peer_close_is_noop(self):
        channel = EventChannel("test")
        channel.send(text_event("before"))
        channel.close()

        channel.send(text_event("after"))
        channel.send(tool_error_event("get_cart", "gone"))
        channel.finish()

        assert channel._queue.qsize() == 1

    @pytest.mark.asyncio
    async def test_producer_outlives_peer(self):
        channel = EventChannel("test")
        seen = []

        async def producer(send):
            channel.close()
            send(text_event("nobody listens"))
            seen.append("finished")

        await run_producer(channel, producer)
        assert seen == ["finished"]


@pytest.mark.unit
def test_event_stream_response():
    app = FastAPI()

    @app.get("/stream")
    async def stream():
        async def producer(send):
            send(text_event("one"))
            send(text_event("two"))
            send(done_event("conv-9"))

        return open_event_stream(producer, headers={"Access-Control-Allow-Origin": "*"})

    with TestClient(app) as client:
        response = client.get("/stream")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["access-control-allow-origin"] == "*"

    frames = [frame for frame in response.text.split("\n\n") if frame]
    assert [decode_event(frame).type for frame in frames[:-1]] == ["text", "text", "done"]
    assert frames[-1] == f"data: {DONE_MARKER}"
