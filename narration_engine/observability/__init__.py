"""Observability module for engine monitoring.

Provides hooks and observers for real-time visibility into stream reads,
narration reconciliation, playback state, and chat tool calls.
"""

from narration_engine.observability.events import (
    StreamOpenedEvent,
    StreamClosedEvent,
    MomentReceivedEvent,
    ReconciledEvent,
    PlaybackStateEvent,
    ChatTokenEvent,
    ToolCallEvent,
)
from narration_engine.observability.hooks import (
    ObservabilityHook,
    NullHook,
    CompositeHook,
)
from narration_engine.observability.console_observer import RichConsoleObserver

__all__ = [
    # Events
    "StreamOpenedEvent",
    "StreamClosedEvent",
    "MomentReceivedEvent",
    "ReconciledEvent",
    "PlaybackStateEvent",
    "ChatTokenEvent",
    "ToolCallEvent",
    # Hooks
    "ObservabilityHook",
    "NullHook",
    "CompositeHook",
    # Observers
    "RichConsoleObserver",
]
