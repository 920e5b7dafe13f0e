"""Rich console observer for real-time engine visibility.

Uses the Rich library to render stream lifecycle, narration moments,
playback state and chat tool calls.
"""

from rich.console import Console

from narration_engine.observability.events import (
    StreamOpenedEvent,
    StreamClosedEvent,
    MomentReceivedEvent,
    ReconciledEvent,
    PlaybackStateEvent,
    ChatTokenEvent,
    ToolCallEvent,
)


class RichConsoleObserver:
    """Pretty console output using Rich."""

    STATE_STYLES = {
        "idle": "dim",
        "loading": "yellow",
        "ready": "cyan",
        "playing": "green",
        "paused": "magenta",
        "done": "blue",
    }

    def __init__(
        self,
        console: Console | None = None,
        show_tokens: bool = False,
        indent: str = "  ",
    ) -> None:
        """Initialize the console observer.

        Args:
            console: Rich Console instance. Creates new one if not provided.
            show_tokens: Stream chat tokens to console.
            indent: Indentation string for nested output.
        """
        self.console = console or Console()
        self.show_tokens = show_tokens
        self.indent = indent
        self._streamed_text = False

    def on_stream_opened(self, event: StreamOpenedEvent) -> None:
        """Render stream start."""
        self.console.print(f"[cyan]>[/] {event.channel} stream {event.endpoint}")

    def on_stream_closed(self, event: StreamClosedEvent) -> None:
        """Render stream end with timing."""
        if self._streamed_text:
            self.console.print()
            self._streamed_text = False
        if event.cancelled:
            status = "[yellow]cancelled[/]"
        elif event.success:
            status = "[green]done[/]"
        else:
            status = f"[red]failed[/] {event.error or ''}"
        self.console.print(
            f"[cyan]<[/] {event.channel} {status} ({event.duration_ms:.0f}ms)"
        )

    def on_moment(self, event: MomentReceivedEvent) -> None:
        """Render an arriving narration moment."""
        preview = event.narration_preview[:60]
        self.console.print(
            f"{self.indent}[dim]#{event.position}[/] moment {event.moment_index} {preview}"
        )

    def on_reconciled(self, event: ReconciledEvent) -> None:
        """Render reconciliation counts."""
        self.console.print(
            f"{self.indent}[magenta]reconciled[/] {event.received} -> "
            f"{event.final_count} ({event.snapshot_count} snapshots)"
        )

    def on_playback_state(self, event: PlaybackStateEvent) -> None:
        """Render playback state transitions."""
        style = self.STATE_STYLES.get(event.state, "white")
        self.console.print(
            f"{self.indent}[{style}]{event.state}[/] @ {event.active_index}"
        )

    def on_chat_token(self, event: ChatTokenEvent) -> None:
        """Render streaming token."""
        if self.show_tokens:
            self.console.print(event.token, end="")
            self._streamed_text = True

    def on_tool_call(self, event: ToolCallEvent) -> None:
        """Render tool call lifecycle."""
        status = "[green]+[/]" if event.status == "complete" else "[yellow]~[/]"
        self.console.print(f"{self.indent}{status} [yellow]{event.tool_name}[/]")
