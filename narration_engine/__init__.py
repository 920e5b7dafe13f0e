"""Streaming narration and playback synchronization for round replays.

Quick Start:
    from narration_engine import ReplaySession
    from narration_engine.streaming import HttpStreamTransport

    transport = HttpStreamTransport("http://localhost:8001/api/v1")
    async with ReplaySession(snapshots, transport, on_frame=render) as session:
        session.start()
        await session.timeline.wait()
"""

from narration_engine.config import Settings, get_settings
from narration_engine.exceptions import (
    EngineError,
    MalformedEventError,
    ProtocolError,
    StateError,
    StreamTimeoutError,
    TransportError,
)
from narration_engine.session import PlaybackFrame, ReplaySession

__all__ = [
    "Settings",
    "get_settings",
    "EngineError",
    "MalformedEventError",
    "ProtocolError",
    "StateError",
    "StreamTimeoutError",
    "TransportError",
    "PlaybackFrame",
    "ReplaySession",
]

__version__ = "0.1.0"
