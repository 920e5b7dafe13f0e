"""Event dataclasses for observability hooks.

These events are emitted by the timeline and chat controller at key points
to provide visibility into stream and playback lifecycle.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class StreamOpenedEvent:
    """Emitted when a stream read is scheduled."""

    channel: str  # "narration" or "chat"
    endpoint: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class StreamClosedEvent:
    """Emitted when a stream read ends."""

    channel: str
    duration_ms: float
    success: bool = True
    cancelled: bool = False
    error: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class MomentReceivedEvent:
    """Emitted for each narration moment appended to the timeline."""

    position: int  # Position in arrival order
    moment_index: int
    narration_preview: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ReconciledEvent:
    """Emitted once the moment list is aligned to the snapshots."""

    received: int
    snapshot_count: int
    final_count: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class PlaybackStateEvent:
    """Emitted when the playback state changes."""

    state: str
    active_index: int
    previous_state: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ChatTokenEvent:
    """Emitted for each streamed chat text delta."""

    message_id: str
    token: str


@dataclass
class ToolCallEvent:
    """Emitted when a chat tool call starts or completes."""

    message_id: str
    tool_name: str
    status: str  # "pending" or "complete"
    timestamp: datetime = field(default_factory=datetime.now)
