"""Replay session.

Owns everything one replay view needs for a single round: the narration
timeline, the camera follow controller, the chat controller, and the scoped
player name cache. Renderers subscribe to frames and transcripts; closing
the session cancels every stream and timer it started.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence

from narration_engine.chat import (
    ChatMessage,
    ChatSessionController,
    SuggestedPrompt,
    build_simulation_context,
    suggest_prompts,
)
from narration_engine.config import Settings, get_settings
from narration_engine.observability import ObservabilityHook
from narration_engine.streaming import StreamHandle, StreamTransport
from narration_engine.timeline import (
    CameraFollowController,
    CameraTarget,
    Moment,
    NarrationTimeline,
    PlaybackState,
    PlayerNameCache,
    RoundContext,
    Snapshot,
)

logger = logging.getLogger(__name__)

MAX_WHAT_IF_QUESTIONS = 3


@dataclass(frozen=True)
class PlaybackFrame:
    """Everything a renderer needs for the active index.

    Attributes:
        active_index: Shared snapshot/moment index.
        snapshot: Snapshot at the index (None for an empty round).
        moment: Moment at the index, None in snapshot-only mode.
        camera_target: Target view, None means reset to identity.
        playback_state: Combined playback state.
        focus_version: Camera focus version for change detection.
        narration: Moment narration with player names resolved.
        what_if_questions: Up to MAX_WHAT_IF_QUESTIONS follow-up questions
            with names resolved.
    """

    active_index: int
    snapshot: Snapshot | None
    moment: Moment | None
    camera_target: CameraTarget | None
    playback_state: PlaybackState
    focus_version: int = 0
    narration: str = ""
    what_if_questions: tuple[str, ...] = ()


class ReplaySession:
    """One round's replay: narration, playback, camera and chat."""

    def __init__(
        self,
        snapshots: Sequence[Snapshot | Mapping[str, Any]],
        transport: StreamTransport,
        final_state: Mapping[str, Any] | None = None,
        context: RoundContext | None = None,
        events: Sequence[Mapping[str, Any]] = (),
        settings: Settings | None = None,
        hook: ObservabilityHook | None = None,
        on_frame: Callable[[PlaybackFrame], None] | None = None,
        on_moments: Callable[[tuple[Moment, ...]], None] | None = None,
        on_chat: Callable[[list[ChatMessage]], None] | None = None,
        chat_transport: StreamTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the session; nothing is opened until start().

        Args:
            snapshots: Complete, ordered snapshot sequence.
            transport: Transport for the narration stream.
            final_state: Round outcome.
            context: Map, teams and roster. Built from snapshots if omitted.
            events: Round events included in chat context.
            settings: Engine settings (defaults to get_settings()).
            hook: Observability hook shared by both channels.
            on_frame: Called with a new frame on every index/state/moment change.
            on_moments: Called with the moment list whenever it changes.
            on_chat: Called with the transcript on every chat change.
            chat_transport: Transport for chat (defaults to transport).
            sleep: Coroutine used by the playback clock.
        """
        self._settings = settings or get_settings()
        self._final_state = dict(final_state or {})
        self._events = tuple(events)
        self._on_frame = on_frame
        self._on_moments = on_moments
        self._closed = False

        self.name_cache = PlayerNameCache()
        self.camera = CameraFollowController()
        self.timeline = NarrationTimeline(
            snapshots,
            transport,
            settings=self._settings,
            name_cache=self.name_cache,
            hook=hook,
            on_change=self._emit_frame,
            on_moments=self._moments_changed,
            sleep=sleep,
        )
        self.context = context or RoundContext.from_snapshots(self.timeline.snapshots)
        self.resolver = self.name_cache.resolver()
        self.chat = ChatSessionController(
            chat_transport or transport,
            settings=self._settings,
            hook=hook,
            on_change=on_chat,
            map_context=self.context.map_name,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def frame(self) -> PlaybackFrame:
        """Frame for the current active index."""
        timeline = self.timeline
        moment = timeline.current_moment
        self.camera.follow(moment)
        narration = ""
        questions: tuple[str, ...] = ()
        if moment is not None:
            narration = self.resolver.resolve(moment.narration)
            questions = tuple(
                self.resolver.resolve(q)
                for q in moment.what_if_questions[:MAX_WHAT_IF_QUESTIONS]
            )
        return PlaybackFrame(
            active_index=timeline.active_index,
            snapshot=timeline.current_snapshot,
            moment=moment,
            camera_target=self.camera.target,
            playback_state=timeline.state,
            focus_version=self.camera.focus_version,
            narration=narration,
            what_if_questions=questions,
        )

    def start(self) -> StreamHandle | None:
        """Open the narration stream."""
        return self.timeline.build(self._final_state, self.context)

    def send_chat(self, text: str) -> str | None:
        """Send a chat message with the current round context attached.

        Returns:
            Assistant message id, or None if nothing was sent.
        """
        moment = self.timeline.current_moment
        simulation_context = build_simulation_context(
            self.timeline.snapshots,
            self.context,
            final_state=self._final_state,
            events=self._events,
            current_index=self.timeline.active_index,
            current_narration=moment.narration if moment is not None else "",
            snapshot_limit=self._settings.chat_snapshot_excerpt,
            event_limit=self._settings.chat_event_excerpt,
        )
        return self.chat.send(text, simulation_context)

    def ask_what_if(self, question: str) -> str | None:
        """Pause playback and ask a moment's follow-up question in chat."""
        self.timeline.pause()
        return self.send_chat(question.replace("**", "").strip())

    def suggestions(self) -> list[SuggestedPrompt]:
        """Suggested chat prompts for the snapshot on screen."""
        return suggest_prompts(
            self.timeline.current_snapshot,
            self.context,
            final_state=self._final_state,
            resolver=self.resolver,
        )

    def close(self) -> None:
        """Cancel streams and timers, and drop the session's name cache."""
        if self._closed:
            return
        self._closed = True
        self.chat.stop()
        self.timeline.destroy()
        self.camera.reset()
        self.name_cache.clear()
        logger.debug("Replay session closed")

    async def __aenter__(self) -> "ReplaySession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def _moments_changed(self, moments: tuple[Moment, ...]) -> None:
        if self._on_moments is not None:
            self._on_moments(moments)
        self._emit_frame()

    def _emit_frame(self) -> None:
        if self._closed:
            return
        frame = self.frame
        if self._on_frame is not None:
            self._on_frame(frame)
