"""
Streaming transport for the chat API.
"""

from .streaming import EventChannel, SSEEvent, open_event_stream

__all__ = [
    "EventChannel",
    "SSEEvent",
    "open_event_stream",
]
