"""Chat transcript types."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class ChatRole(str, Enum):
    """Who wrote a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ToolCallStatus(str, Enum):
    """Lifecycle of a tool call inside an assistant reply."""

    PENDING = "pending"
    COMPLETE = "complete"


@dataclass
class ToolCallRecord:
    """A tool call announced by the chat collaborator.

    Attributes:
        name: Tool name.
        status: Pending until its result arrives.
    """

    name: str
    status: ToolCallStatus = ToolCallStatus.PENDING


@dataclass
class ChatMessage:
    """One chat message.

    Assistant messages start empty with streaming=True and accumulate text
    deltas and tool calls until the stream ends.

    Attributes:
        role: USER or ASSISTANT.
        content: Accumulated text.
        streaming: Whether deltas may still arrive.
        tool_calls: Tool calls in arrival order.
        id: Unique message id.
        timestamp: Creation time.
    """

    role: ChatRole
    content: str = ""
    streaming: bool = False
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        """Create a user message."""
        return cls(role=ChatRole.USER, content=content)

    @classmethod
    def assistant_placeholder(cls) -> "ChatMessage":
        """Create an empty assistant message that is still streaming."""
        return cls(role=ChatRole.ASSISTANT, streaming=True)

    def rendered_tool_calls(self) -> list[ToolCallRecord]:
        """Tool calls collapsed by name for display.

        The last status recorded for a name wins; names keep the order in
        which they first appeared.
        """
        latest: dict[str, ToolCallStatus] = {}
        for call in self.tool_calls:
            latest[call.name] = call.status
        return [ToolCallRecord(name=name, status=status) for name, status in latest.items()]

    def copy(self) -> "ChatMessage":
        """Detached copy safe to hand to renderers."""
        return replace(self, tool_calls=[replace(call) for call in self.tool_calls])
