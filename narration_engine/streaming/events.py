"""Stream event type definitions.

Typed events decoded from the line-delimited collaborator stream. Both the
narration and chat protocols share one envelope:

    data: {"type": "<discriminant>", "data": ..., "tool_name": ...}
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from narration_engine.exceptions import MalformedEventError

EVENT_MARKER = "data:"


class EventType(str, Enum):
    """Recognized event discriminants across both protocols."""

    MOMENT = "moment"
    TEXT = "text"
    TOOL_START = "tool_start"
    TOOL_RESULT = "tool_result"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    """A decoded stream event.

    Attributes:
        type: Event discriminant.
        data: Type-specific body (moment dict, text delta, error message).
        tool_name: Tool name for tool_start/tool_result events.
        raw: The full decoded payload.
    """

    type: EventType
    data: Any = None
    tool_name: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_terminal(self) -> bool:
        """Whether this event ends the collaborator's operation."""
        return self.type in (EventType.DONE, EventType.ERROR)

    @property
    def error_message(self) -> str:
        """Human-readable message for error events."""
        if self.data:
            return str(self.data)
        return "Unknown error"


def parse_event_line(line: str) -> StreamEvent | None:
    """Decode one event line.

    Args:
        line: A single line from an event block.

    Returns:
        The decoded event, or None for lines that are not event lines
        (comments, `event:`/`id:` fields, blank lines).

    Raises:
        MalformedEventError: If the payload is not a JSON object with a
            recognized `type`.
    """
    if not line.startswith(EVENT_MARKER):
        return None

    body = line[len(EVENT_MARKER):]
    if body.startswith(" "):
        body = body[1:]

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Invalid JSON: {e}", raw_line=line) from e

    if not isinstance(payload, dict):
        raise MalformedEventError("Payload is not an object", raw_line=line)

    try:
        event_type = EventType(payload.get("type"))
    except ValueError as e:
        raise MalformedEventError(
            f"Unknown event type: {payload.get('type')!r}", raw_line=line
        ) from e

    tool_name = payload.get("tool_name")
    return StreamEvent(
        type=event_type,
        data=payload.get("data"),
        tool_name=str(tool_name) if tool_name is not None else None,
        raw=payload,
    )
