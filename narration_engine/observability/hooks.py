"""Hooks that receive stream, playback and chat events.

The timeline and the chat controller call a single ObservabilityHook.
NullHook is the default; CompositeHook fans one event out to several
observers such as the rich console renderer.
"""

from typing import Protocol, runtime_checkable

from narration_engine.observability.events import (
    StreamOpenedEvent,
    StreamClosedEvent,
    MomentReceivedEvent,
    ReconciledEvent,
    PlaybackStateEvent,
    ChatTokenEvent,
    ToolCallEvent,
)


@runtime_checkable
class ObservabilityHook(Protocol):
    """Receiver for engine events.

    Observers implement the methods they care about. Every call happens on
    the event loop thread and must not block.
    """

    def on_stream_opened(self, event: StreamOpenedEvent) -> None:
        """Called when a stream read is scheduled."""
        ...

    def on_stream_closed(self, event: StreamClosedEvent) -> None:
        """Called when a stream read ends."""
        ...

    def on_moment(self, event: MomentReceivedEvent) -> None:
        """Called for each narration moment."""
        ...

    def on_reconciled(self, event: ReconciledEvent) -> None:
        """Called once the moment list is reconciled."""
        ...

    def on_playback_state(self, event: PlaybackStateEvent) -> None:
        """Called when the playback state changes."""
        ...

    def on_chat_token(self, event: ChatTokenEvent) -> None:
        """Called for each chat text delta."""
        ...

    def on_tool_call(self, event: ToolCallEvent) -> None:
        """Called when a tool call starts or completes."""
        ...


class NullHook:
    """Hook that drops every event. Used when no observer is attached."""

    def on_stream_opened(self, event: StreamOpenedEvent) -> None:
        pass

    def on_stream_closed(self, event: StreamClosedEvent) -> None:
        pass

    def on_moment(self, event: MomentReceivedEvent) -> None:
        pass

    def on_reconciled(self, event: ReconciledEvent) -> None:
        pass

    def on_playback_state(self, event: PlaybackStateEvent) -> None:
        pass

    def on_chat_token(self, event: ChatTokenEvent) -> None:
        pass

    def on_tool_call(self, event: ToolCallEvent) -> None:
        pass


class CompositeHook:
    """Forwards each event to several hooks, in registration order."""

    def __init__(self, hooks: list[ObservabilityHook]) -> None:
        """Args:
            hooks: Observers, called in list order.
        """
        self.hooks = hooks

    def on_stream_opened(self, event: StreamOpenedEvent) -> None:
        for hook in self.hooks:
            hook.on_stream_opened(event)

    def on_stream_closed(self, event: StreamClosedEvent) -> None:
        for hook in self.hooks:
            hook.on_stream_closed(event)

    def on_moment(self, event: MomentReceivedEvent) -> None:
        for hook in self.hooks:
            hook.on_moment(event)

    def on_reconciled(self, event: ReconciledEvent) -> None:
        for hook in self.hooks:
            hook.on_reconciled(event)

    def on_playback_state(self, event: PlaybackStateEvent) -> None:
        for hook in self.hooks:
            hook.on_playback_state(event)

    def on_chat_token(self, event: ChatTokenEvent) -> None:
        for hook in self.hooks:
            hook.on_chat_token(event)

    def on_tool_call(self, event: ToolCallEvent) -> None:
        for hook in self.hooks:
            hook.on_tool_call(event)
