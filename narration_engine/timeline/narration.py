"""Narration Timeline.

Reconciles a fixed, already-known snapshot sequence with narration moments
that arrive one at a time over a stream, and owns the playback clock that
drives the shared active index.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Sequence

from pydantic import ValidationError

from narration_engine.config import Settings, get_settings, report_misuse
from narration_engine.exceptions import EngineError, ProtocolError, TransportError
from narration_engine.observability import (
    MomentReceivedEvent,
    NullHook,
    ObservabilityHook,
    PlaybackStateEvent,
    ReconciledEvent,
    StreamClosedEvent,
    StreamOpenedEvent,
)
from narration_engine.streaming import (
    EventStreamReader,
    EventType,
    StreamEvent,
    StreamHandle,
    StreamTransport,
    start_read,
)
from narration_engine.timeline.clock import PlaybackClock
from narration_engine.timeline.models import (
    Moment,
    NarrationRequest,
    PlaybackState,
    RoundContext,
    Snapshot,
)
from narration_engine.timeline.names import PlayerNameCache
from narration_engine.timeline.reconcile import reconcile_moments

logger = logging.getLogger(__name__)


class NarrationTimeline:
    """One round's snapshots, streamed moments, and playback clock.

    Each owning view creates exactly one timeline and calls destroy() when
    it is torn down. The moment list is only mutated by this object's own
    stream handlers; observers receive tuples.
    """

    CHANNEL = "narration"

    def __init__(
        self,
        snapshots: Sequence[Snapshot | Mapping[str, Any]],
        transport: StreamTransport,
        settings: Settings | None = None,
        name_cache: PlayerNameCache | None = None,
        hook: ObservabilityHook | None = None,
        on_change: Callable[[], None] | None = None,
        on_moments: Callable[[tuple[Moment, ...]], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the timeline in the IDLE state.

        Args:
            snapshots: Complete, ordered snapshot sequence.
            transport: Transport for the narration stream.
            settings: Engine settings (defaults to get_settings()).
            name_cache: Scoped player name cache to learn the roster into.
            hook: Observability hook.
            on_change: Called after every active index or state change.
            on_moments: Called with the moment list whenever it changes.
            sleep: Coroutine used by the playback clock.
        """
        self._settings = settings or get_settings()
        self._snapshots: tuple[Snapshot, ...] = tuple(
            s if isinstance(s, Snapshot) else Snapshot.model_validate(s)
            for s in snapshots
        )
        self._transport = transport
        self._name_cache = name_cache if name_cache is not None else PlayerNameCache()
        self._name_cache.learn(self._snapshots)
        self._hook: ObservabilityHook = hook or NullHook()
        self._on_change = on_change
        self._on_moments = on_moments

        self._clock = PlaybackClock(
            len(self._snapshots),
            interval_ms=self._settings.narration_interval_ms,
            on_change=self._notify_change,
            sleep=sleep,
            strict=self._settings.strict_state,
        )

        self._phase = PlaybackState.IDLE
        self._moments: list[Moment] = []
        self._reconciled: tuple[Moment, ...] | None = None
        self._error: EngineError | None = None
        self._handle: StreamHandle | None = None
        self._build_id = 0
        self._autoplay = True
        self._stream_started = 0.0
        self._last_state = self.state
        self._destroyed = False

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def snapshots(self) -> tuple[Snapshot, ...]:
        return self._snapshots

    @property
    def moments(self) -> tuple[Moment, ...]:
        """Reconciled moments, or the partial list received so far."""
        if self._reconciled is not None:
            return self._reconciled
        return tuple(self._moments)

    @property
    def is_reconciled(self) -> bool:
        return self._reconciled is not None

    @property
    def has_narration(self) -> bool:
        """False in snapshot-only mode (no moments)."""
        return bool(self._reconciled if self._reconciled is not None else self._moments)

    @property
    def state(self) -> PlaybackState:
        """Combined lifecycle state (idle/loading from the stream, rest from the clock)."""
        if (
            self._phase in (PlaybackState.IDLE, PlaybackState.LOADING)
            and self._clock.state is PlaybackState.READY
        ):
            return self._phase
        return self._clock.state

    @property
    def is_loading(self) -> bool:
        return self._phase is PlaybackState.LOADING

    @property
    def error(self) -> EngineError | None:
        """Transport or protocol error from the last build, if any."""
        return self._error

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def clock(self) -> PlaybackClock:
        return self._clock

    @property
    def name_cache(self) -> PlayerNameCache:
        return self._name_cache

    @property
    def active_index(self) -> int:
        return self._clock.index

    @property
    def current_snapshot(self) -> Snapshot | None:
        if not self._snapshots:
            return None
        return self._snapshots[self._clock.index]

    @property
    def current_moment(self) -> Moment | None:
        return self.moment_at(self._clock.index)

    def moment_at(self, index: int) -> Moment | None:
        """Moment paired with a snapshot index, if narration covers it."""
        moments = self.moments
        if 0 <= index < len(moments):
            return moments[index]
        return None

    # =========================================================================
    # Stream lifecycle
    # =========================================================================

    def build(
        self,
        final_state: Mapping[str, Any] | None = None,
        context: RoundContext | None = None,
    ) -> StreamHandle | None:
        """Open the narration stream for this timeline's snapshots.

        Args:
            final_state: Round outcome sent to the collaborator.
            context: Map, teams and roster. Built from the snapshots if omitted.

        Returns:
            Handle for the in-flight read, or None when nothing was opened
            (no snapshots, or ignored misuse).
        """
        if self._destroyed:
            report_misuse("build() on a destroyed timeline", self._settings.strict_state)
            return None
        if self._phase is PlaybackState.LOADING:
            report_misuse(
                "build() while a previous build is still loading",
                self._settings.strict_state,
            )
            return None

        if self._phase is not PlaybackState.IDLE:
            self._clock.stop()
        self._release_stream()
        self._autoplay = True
        self._moments = []
        self._reconciled = None
        self._error = None
        self._build_id += 1

        if not self._snapshots:
            logger.info("No snapshots to narrate, timeline ready without a stream")
            self._phase = PlaybackState.READY
            self._reconciled = ()
            self._notify_change()
            return None

        context = context or RoundContext.from_snapshots(self._snapshots)
        request = NarrationRequest(
            session_id=f"tactical-{int(time.time() * 1000)}",
            snapshots=[s.to_payload() for s in self._snapshots],
            final_state=dict(final_state or {}),
            map_name=context.map_name,
            attack_team=context.attack_team,
            defense_team=context.defense_team,
            player_roster=context.roster_payload(),
        )

        build_id = self._build_id
        reader = EventStreamReader(
            on_event=lambda event: self._on_event(build_id, event),
            on_complete=lambda: self._on_stream_end(build_id),
            on_error=lambda error: self._on_transport_error(build_id, error),
            idle_timeout=self._settings.stream_idle_timeout,
        )

        endpoint = self._settings.narration_endpoint
        self._phase = PlaybackState.LOADING
        self._stream_started = time.perf_counter()
        self._hook.on_stream_opened(StreamOpenedEvent(channel=self.CHANNEL, endpoint=endpoint))
        logger.info(f"Opening narration stream for {len(self._snapshots)} snapshots")
        self._handle = start_read(
            reader, self._transport, endpoint, request.model_dump(), name="narration-stream"
        )
        self._notify_change()
        return self._handle

    async def wait(self) -> None:
        """Wait for the in-flight narration read, if any, to finish."""
        if self._handle is not None:
            await self._handle.wait()

    def destroy(self) -> None:
        """Cancel the stream and the timer. No further mutation is allowed."""
        if self._destroyed:
            return
        self._destroyed = True
        if self._handle is not None and not self._handle.done:
            self._handle.cancel()
            if self._phase is PlaybackState.LOADING:
                self._close_stream(success=False, cancelled=True)
        self._handle = None
        self._clock.destroy()
        logger.debug("Narration timeline destroyed")

    # =========================================================================
    # Playback control
    # =========================================================================

    def play(self) -> None:
        self._autoplay = True
        self._clock.play()

    def pause(self) -> None:
        """Pause playback. While loading, cancels the autoplay that follows."""
        if self.is_loading:
            self._autoplay = False
        self._clock.pause()

    def stop(self) -> None:
        self._clock.stop()

    def seek(self, index: int) -> int:
        return self._clock.seek(index)

    def step(self, delta: int = 1) -> int:
        return self._clock.step(delta)

    # =========================================================================
    # Stream handlers
    # =========================================================================

    def _accepting(self, build_id: int) -> bool:
        return (
            not self._destroyed
            and build_id == self._build_id
            and self._phase is PlaybackState.LOADING
        )

    def _on_event(self, build_id: int, event: StreamEvent) -> None:
        if not self._accepting(build_id):
            logger.debug(f"Ignoring late narration event: {event.type.value}")
            return

        if event.type is EventType.MOMENT:
            self._append_moment(event)
        elif event.type is EventType.DONE:
            handle = self._handle
            self._finalize()
            self._release_stream(handle)
        elif event.type is EventType.ERROR:
            handle = self._handle
            self._fail(ProtocolError(event.error_message))
            self._release_stream(handle)
        else:
            logger.debug(f"Ignoring {event.type.value} event on narration stream")

    def _on_stream_end(self, build_id: int) -> None:
        # Stream ended without a done event; what arrived is the narration
        if self._accepting(build_id):
            self._finalize()

    def _on_transport_error(self, build_id: int, error: TransportError) -> None:
        if self._accepting(build_id):
            self._fail(error)

    def _append_moment(self, event: StreamEvent) -> None:
        if not isinstance(event.data, Mapping):
            logger.debug("Skipping moment event without an object body")
            return
        try:
            moment = Moment.model_validate(event.data)
        except ValidationError as e:
            logger.debug(f"Skipping invalid moment: {e.error_count()} errors")
            return

        self._moments.append(moment)
        self._hook.on_moment(
            MomentReceivedEvent(
                position=len(self._moments) - 1,
                moment_index=moment.moment_index,
                narration_preview=moment.narration[:80],
            )
        )
        self._publish_moments()

    def _finalize(self) -> None:
        received = len(self._moments)
        self._reconciled = reconcile_moments(self._moments, len(self._snapshots))
        self._phase = PlaybackState.READY
        self._close_stream(success=True)
        self._hook.on_reconciled(
            ReconciledEvent(
                received=received,
                snapshot_count=len(self._snapshots),
                final_count=len(self._reconciled),
            )
        )
        logger.info(
            f"Narration reconciled: {received} moments received, "
            f"{len(self._reconciled)} kept for {len(self._snapshots)} snapshots"
        )
        self._publish_moments()
        self._start_playback()

    def _fail(self, error: EngineError) -> None:
        self._error = error
        self._phase = PlaybackState.READY
        self._close_stream(success=False, error=str(error))
        logger.warning(
            f"Narration stream failed ({error}); keeping {len(self._moments)} "
            "moments and falling back to playback"
        )
        self._start_playback()

    def _start_playback(self) -> None:
        interval = (
            self._settings.narration_interval_ms
            if self.has_narration
            else self._settings.snapshot_interval_ms
        )
        self._clock.set_interval(interval)
        self._notify_change()
        if (
            self._snapshots
            and self._autoplay
            and self._clock.state is PlaybackState.READY
        ):
            self._clock.play()

    def _release_stream(self, handle: StreamHandle | None = None) -> None:
        # Narration is settled once done or error arrives; the read can go
        handle = handle or self._handle
        if handle is not None and not handle.done:
            handle.cancel()

    def _close_stream(
        self, success: bool, cancelled: bool = False, error: str | None = None
    ) -> None:
        self._hook.on_stream_closed(
            StreamClosedEvent(
                channel=self.CHANNEL,
                duration_ms=(time.perf_counter() - self._stream_started) * 1000,
                success=success,
                cancelled=cancelled,
                error=error,
            )
        )

    def _publish_moments(self) -> None:
        if self._on_moments is not None:
            self._on_moments(self.moments)

    def _notify_change(self) -> None:
        state = self.state
        if state is not self._last_state:
            self._hook.on_playback_state(
                PlaybackStateEvent(
                    state=state.value,
                    active_index=self._clock.index,
                    previous_state=self._last_state.value,
                )
            )
            self._last_state = state
        if self._on_change is not None:
            self._on_change()


def build_timeline(
    snapshots: Sequence[Snapshot | Mapping[str, Any]],
    final_state: Mapping[str, Any] | None,
    context: RoundContext | None,
    transport: StreamTransport,
    **kwargs: Any,
) -> NarrationTimeline:
    """Create a timeline and open its narration stream.

    Must be called with a running event loop.

    Args:
        snapshots: Complete, ordered snapshot sequence.
        final_state: Round outcome.
        context: Map, teams and roster.
        transport: Transport for the narration stream.
        **kwargs: Forwarded to NarrationTimeline.

    Returns:
        The timeline, already LOADING (or READY when there are no snapshots).
    """
    timeline = NarrationTimeline(snapshots, transport, **kwargs)
    timeline.build(final_state, context)
    return timeline
