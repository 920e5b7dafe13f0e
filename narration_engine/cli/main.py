"""Main CLI application for the narration engine."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from narration_engine.cli.display import (
    console,
    display_error,
    display_frame,
    display_info,
    display_message,
    display_round_header,
    display_suggestions,
)
from narration_engine.cli.round_file import RoundFile, RoundFileError, load_round_file
from narration_engine.config import Settings, get_settings
from narration_engine.observability import RichConsoleObserver
from narration_engine.session import PlaybackFrame, ReplaySession
from narration_engine.streaming import (
    HttpStreamTransport,
    RetryConfig,
    RetryingTransport,
    StreamTransport,
)
from narration_engine.timeline import PlaybackState

# Create main app
app = typer.Typer(
    name="narration-engine",
    help="Stream tactical narration and coaching chat for recorded rounds",
    add_completion=False,
)


def _load(round_file: Path) -> RoundFile:
    try:
        return load_round_file(round_file)
    except RoundFileError as e:
        display_error(str(e))
        raise typer.Exit(1)


def _build_transport(settings: Settings) -> tuple[HttpStreamTransport, StreamTransport]:
    """HTTP transport plus the (optionally retrying) transport handed to streams."""
    http = HttpStreamTransport(settings.api_base_url, timeout=settings.request_timeout)
    if settings.open_retries > 0:
        return http, RetryingTransport(http, RetryConfig(max_retries=settings.open_retries))
    return http, http


def _playback_finished(session: ReplaySession) -> bool:
    timeline = session.timeline
    if timeline.state is PlaybackState.DONE:
        return True
    # Single-snapshot rounds never start the timer
    return (
        timeline.state is PlaybackState.READY
        and not timeline.is_loading
        and timeline.clock.at_end
    )


@app.command()
def watch(
    round_file: Path = typer.Argument(..., help="JSON round file with snapshots"),
    interval_ms: Optional[int] = typer.Option(
        None, "--interval", "-i", help="Milliseconds per narrated moment"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show stream lifecycle events"),
) -> None:
    """Stream narration for a round and play it back in the terminal."""
    replay = _load(round_file)
    settings = get_settings()
    if interval_ms is not None:
        settings = settings.model_copy(update={"narration_interval_ms": interval_ms})
    try:
        asyncio.run(_watch_async(replay, settings, verbose))
    except KeyboardInterrupt:
        display_info("\nPlayback stopped.")


async def _watch_async(replay: RoundFile, settings: Settings, verbose: bool) -> None:
    context = replay.round_context()
    display_round_header(
        context.map_name, context.attack_team, context.defense_team, len(replay.snapshots)
    )
    http, transport = _build_transport(settings)
    finished = asyncio.Event()
    last_shown: tuple[int, str] | None = None

    def on_frame(frame: PlaybackFrame) -> None:
        nonlocal last_shown
        key = (frame.active_index, frame.narration)
        if frame.playback_state is not PlaybackState.LOADING and key != last_shown:
            last_shown = key
            display_frame(frame)
        if _playback_finished(session):
            finished.set()

    session = ReplaySession(
        replay.snapshots,
        transport,
        final_state=replay.final_state,
        context=context,
        events=replay.events,
        settings=settings,
        hook=RichConsoleObserver(console=console) if verbose else None,
        on_frame=on_frame,
    )
    try:
        async with session:
            session.start()
            await session.timeline.wait()
            if session.timeline.error is not None:
                display_error(f"Narration unavailable: {session.timeline.error}")
            await finished.wait()
    finally:
        await http.aclose()


@app.command()
def chat(
    round_file: Path = typer.Argument(..., help="JSON round file with snapshots"),
    question: str = typer.Argument(..., help="Question for the coach"),
    at: int = typer.Option(0, "--at", help="Snapshot index the question refers to"),
    suggest: bool = typer.Option(False, "--suggest", help="Show suggested questions first"),
) -> None:
    """Ask the coach one question about a round and stream the answer."""
    replay = _load(round_file)
    try:
        asyncio.run(_chat_async(replay, get_settings(), question, at, suggest))
    except KeyboardInterrupt:
        display_info("\nChat cancelled.")


async def _chat_async(
    replay: RoundFile, settings: Settings, question: str, at: int, suggest: bool
) -> None:
    http, transport = _build_transport(settings)
    session = ReplaySession(
        replay.snapshots,
        transport,
        final_state=replay.final_state,
        context=replay.round_context(),
        events=replay.events,
        settings=settings,
        hook=RichConsoleObserver(console=console, show_tokens=False),
    )
    try:
        async with session:
            session.timeline.seek(at)
            if suggest:
                display_suggestions(session.suggestions())
            if session.send_chat(question) is None:
                display_error("Nothing to send")
                raise typer.Exit(1)
            await session.chat.wait()
            for message in session.chat.messages:
                display_message(message)
    finally:
        await http.aclose()


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Narration Engine - replay rounds with streamed tactical narration.

    Use 'narration-engine watch ROUND_FILE' to play a round, or
    'narration-engine chat ROUND_FILE QUESTION' to ask the coach.
    """
    if debug or get_settings().debug:
        logging.basicConfig(level=logging.DEBUG)


if __name__ == "__main__":
    app()
