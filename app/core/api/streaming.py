"""
Server-Sent Events (SSE) transport for chat turns.

A producer coroutine receives a ``send`` callable and pushes stream events
into an ``EventChannel``. The response body drains the channel. Once the
peer disconnects the channel is closed and further sends are no-ops.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from fastapi.responses import StreamingResponse
from loguru import logger

from app.schemas.chat import StreamEvent, stream_event_adapter

DONE_MARKER = "[DONE]"

Send = Callable[[Any], None]
Producer = Callable[[Send], Awaitable[None]]

# Producers keep running after a disconnect; hold references so they are not collected
_background_tasks: Set[asyncio.Task] = set()


class SSEEvent:
    """Server-Sent Event data structure."""

    def __init__(self, data: Union[str, Dict[str, Any]], event: Optional[str] = None):
        self.data = data
        self.event = event

    def format(self) -> str:
        """Format event as SSE string."""
        lines = []
        if self.event:
            lines.append(f"event: {self.event}")

        if isinstance(self.data, dict):
            data_str = json.dumps(self.data, ensure_ascii=False)
        else:
            data_str = str(self.data)

        for line in data_str.split("\n"):
            lines.append(f"data: {line}")

        # Empty line marks end of event
        lines.append("")
        return "\n".join(lines) + "\n"


def encode_event(event: StreamEvent) -> str:
    """Encode a stream event as one ``data: {type, data}`` frame."""
    return SSEEvent(data=event.model_dump(mode="json", by_alias=True)).format()


def decode_event(frame: Union[str, Dict[str, Any]]) -> Optional[StreamEvent]:
    """
    Decode one frame (or its JSON payload) back into a stream event.

    Returns None for the transport terminal marker.
    """
    if isinstance(frame, dict):
        return stream_event_adapter.validate_python(frame)

    payload = "\n".join(
        line[5:].lstrip() for line in frame.strip().splitlines() if line.startswith("data:")
    ) or frame.strip()
    if payload == DONE_MARKER:
        return None
    return stream_event_adapter.validate_json(payload)


class EventChannel:
    """Single-writer queue of encoded frames with an explicit closed flag."""

    def __init__(self, name: str = "chat"):
        self.name = name
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    def send(self, event: StreamEvent):
        """Queue an event; a no-op once the channel is closed."""
        if self.closed:
            logger.debug(f"Dropping {event.type} event on closed stream {self.name}")
            return
        self._queue.put_nowait(encode_event(event))

    def finish(self):
        """Write the terminal marker and close."""
        if self.closed:
            return
        self._queue.put_nowait(SSEEvent(data=DONE_MARKER).format())
        self._end()

    def fail(self):
        """Write an error frame and close without the terminal marker."""
        if self.closed:
            return
        self._queue.put_nowait(SSEEvent(data={"error": "Internal server error"}, event="error").format())
        self._end()

    def close(self):
        """Close from the consumer side, e.g. when the peer went away."""
        if self.closed:
            return
        self.closed = True
        logger.info(f"Event stream {self.name} closed by peer")

    def _end(self):
        self.closed = True
        self._queue.put_nowait(None)

    async def frames(self):
        """Yield encoded frames until the producer side ends the stream."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


async def run_producer(channel: EventChannel, producer: Producer):
    try:
        await producer(channel.send)
    except Exception as e:
        logger.exception(f"Streaming producer failed on {channel.name}: {e}")
        channel.fail()
    else:
        channel.finish()


def open_event_stream(
    producer: Producer,
    headers: Optional[Dict[str, str]] = None,
    name: str = "chat",
) -> StreamingResponse:
    """
    Open a long-lived SSE response whose body is produced by ``producer(send)``.

    After the producer returns, ``data: [DONE]`` is written. If it raises, an
    ``error`` frame is written instead. Either way the channel is then closed.
    """
    channel = EventChannel(name)

    async def event_stream():
        task = asyncio.create_task(run_producer(channel, producer))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        try:
            async for frame in channel.frames():
                yield frame
        finally:
            channel.close()

    response_headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",  # Disable nginx buffering
    }
    response_headers.update(headers or {})

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=response_headers)
