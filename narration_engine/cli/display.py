"""Rich display helpers for CLI output."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from narration_engine.chat import ChatMessage, ChatRole, SuggestedPrompt, ToolCallStatus
from narration_engine.session import PlaybackFrame
from narration_engine.timeline import PlaybackState


# Shared console instance
console = Console()

STATE_STYLES = {
    PlaybackState.IDLE: "dim",
    PlaybackState.LOADING: "yellow",
    PlaybackState.READY: "cyan",
    PlaybackState.PLAYING: "green",
    PlaybackState.PAUSED: "magenta",
    PlaybackState.DONE: "blue",
}


def display_error(message: str) -> None:
    """Display error message.

    Args:
        message: Error message.
    """
    console.print(f"[bold red]Error:[/bold red] {message}")


def display_info(message: str) -> None:
    """Display info message.

    Args:
        message: Info message.
    """
    console.print(f"[dim]{message}[/dim]")


def display_round_header(map_name: str, attack_team: str, defense_team: str, snapshots: int) -> None:
    """Display the round being replayed."""
    title = f"[bold cyan]{map_name or 'Unknown map'}[/bold cyan]"
    body = f"{attack_team} (attack) vs {defense_team} (defense)\n[dim]{snapshots} snapshots[/dim]"
    console.print()
    console.print(Panel(body, title=title, style="cyan"))
    console.print()


def display_frame(frame: PlaybackFrame) -> None:
    """Display one playback frame.

    Args:
        frame: Frame emitted by the replay session.
    """
    style = STATE_STYLES.get(frame.playback_state, "white")
    snapshot = frame.snapshot
    if snapshot is None:
        console.print(f"[{style}]{frame.playback_state.value}[/] [dim]no snapshots[/dim]")
        return

    alive = {"attack": 0, "defense": 0}
    for player in snapshot.players:
        if player.is_alive and player.side in alive:
            alive[player.side] += 1

    header = (
        f"[{style}]{frame.playback_state.value:>7}[/] "
        f"[bold]#{frame.active_index}[/bold] "
        f"{snapshot.time_ms / 1000:6.1f}s {snapshot.phase} "
        f"[dim]{alive['attack']}v{alive['defense']}[/dim]"
    )
    if frame.camera_target is not None:
        target = frame.camera_target
        header += f" [dim]cam ({target.focus_x:.2f}, {target.focus_y:.2f}) x{target.zoom:.1f}[/dim]"
    console.print(header)

    if frame.narration:
        console.print(Panel(frame.narration, border_style="dim", padding=(0, 2)))
    for question in frame.what_if_questions:
        console.print(f"  [yellow]?[/yellow] {question}")


def display_suggestions(prompts: list[SuggestedPrompt]) -> None:
    """Display suggested chat prompts.

    Args:
        prompts: Prompts for the current snapshot.
    """
    if not prompts:
        return
    table = Table(title="Suggested questions")
    table.add_column("Kind", style="cyan")
    table.add_column("Prompt", style="white")
    for prompt in prompts:
        table.add_row(prompt.kind, prompt.label)
    console.print(table)


def display_message(message: ChatMessage) -> None:
    """Display a finished chat message with its tool calls.

    Args:
        message: Transcript entry.
    """
    if message.role is ChatRole.USER:
        console.print(f"[bold cyan]You:[/bold cyan] {message.content}")
        return

    calls = message.rendered_tool_calls()
    if calls:
        rendered = ", ".join(
            f"[green]{c.name}[/green]" if c.status is ToolCallStatus.COMPLETE else f"[yellow]{c.name}...[/yellow]"
            for c in calls
        )
        console.print(f"[dim]Tools:[/dim] {rendered}")
    console.print(Panel(message.content or "[dim](no answer)[/dim]", title="Coach", border_style="green"))
