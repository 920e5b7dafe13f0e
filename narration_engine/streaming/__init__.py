"""Streaming layer shared by the narration and chat channels.

Quick Start:
    from narration_engine.streaming import EventStreamReader, HttpStreamTransport

    transport = HttpStreamTransport("http://localhost:8001/api/v1")
    reader = EventStreamReader(on_event=print, on_complete=lambda: print("done"))
    await reader.read_from(transport, "/coaching/chat/stream", {"message": "hi"})
"""

# Event types
from narration_engine.streaming.events import EventType, StreamEvent, parse_event_line

# Transports
from narration_engine.streaming.transport import (
    HttpStreamTransport,
    StreamResponse,
    StreamTransport,
)

# Retry utilities
from narration_engine.streaming.retry import RetryConfig, RetryingTransport

# Reader
from narration_engine.streaming.reader import (
    EventStreamReader,
    StreamHandle,
    iter_events,
    start_read,
)

__all__ = [
    # Event types
    "EventType",
    "StreamEvent",
    "parse_event_line",
    # Transports
    "HttpStreamTransport",
    "StreamResponse",
    "StreamTransport",
    # Retry
    "RetryConfig",
    "RetryingTransport",
    # Reader
    "EventStreamReader",
    "StreamHandle",
    "iter_events",
    "start_read",
]
