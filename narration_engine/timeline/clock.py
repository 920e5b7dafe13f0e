"""Playback Clock.

Cooperative timer that advances an active index at a fixed interval. Only
one timer task is ever live per clock.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from narration_engine.config import report_misuse
from narration_engine.timeline.models import PlaybackState

logger = logging.getLogger(__name__)


class PlaybackClock:
    """Advances an index over [0, length - 1] with play/pause/stop/seek.

    The clock owns the active index. Every index or state change is reported
    through on_change, synchronously, so observers always read a consistent
    (index, state) pair.
    """

    def __init__(
        self,
        length: int,
        interval_ms: int = 4000,
        on_change: Callable[[], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        strict: bool = True,
    ) -> None:
        """Initialize the clock.

        Args:
            length: Number of positions (snapshots).
            interval_ms: Milliseconds per tick.
            on_change: Called after every index or state change.
            sleep: Coroutine used for the tick delay.
            strict: Raise StateError on misuse instead of logging.
        """
        if length < 0:
            raise ValueError(f"Length must be >= 0, got {length}")
        if interval_ms <= 0:
            raise ValueError(f"Interval must be positive, got {interval_ms}")
        self._length = length
        self._interval_ms = interval_ms
        self._on_change = on_change
        self._sleep = sleep
        self._strict = strict

        self._index = 0
        self._state = PlaybackState.READY
        self._timer: asyncio.Task[None] | None = None
        self._destroyed = False

    @property
    def index(self) -> int:
        """Active index."""
        return self._index

    @property
    def length(self) -> int:
        return self._length

    @property
    def state(self) -> PlaybackState:
        """READY, PLAYING, PAUSED or DONE."""
        return self._state

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def is_running(self) -> bool:
        """Whether a timer task is live."""
        return self._timer is not None

    @property
    def at_end(self) -> bool:
        return self._length == 0 or self._index >= self._length - 1

    def play(self) -> None:
        """Start advancing. No-op if already playing or at the last index."""
        if self._check_destroyed("play"):
            return
        if self._timer is not None or self.at_end:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run())
        self._set_state(PlaybackState.PLAYING)

    def pause(self) -> None:
        """Cancel the timer, keeping the index."""
        if self._check_destroyed("pause"):
            return
        self._cancel_timer()
        if self._state is PlaybackState.PLAYING:
            self._set_state(PlaybackState.PAUSED)

    def stop(self) -> None:
        """Cancel the timer and rewind to index 0 in the READY state."""
        if self._check_destroyed("stop"):
            return
        self._cancel_timer()
        changed = self._index != 0 or self._state is not PlaybackState.READY
        self._index = 0
        self._state = PlaybackState.READY
        if changed:
            self._notify()

    def seek(self, index: int) -> int:
        """Jump to index (clamped) without starting or stopping the timer.

        Returns:
            The index actually applied.
        """
        if self._check_destroyed("seek"):
            return self._index
        if self._length == 0:
            return self._index

        target = max(0, min(index, self._length - 1))
        if self._state is PlaybackState.PLAYING and target == self._length - 1:
            self._index = target
            self._finish()
            return target

        changed = target != self._index
        self._index = target
        if self._state is PlaybackState.DONE and not self.at_end:
            self._state = PlaybackState.PAUSED
            changed = True
        if changed:
            self._notify()
        return target

    def step(self, delta: int = 1) -> int:
        """Seek relative to the current index."""
        return self.seek(self._index + delta)

    def set_interval(self, interval_ms: int) -> None:
        """Change the tick interval; a running timer restarts with it."""
        if interval_ms <= 0:
            raise ValueError(f"Interval must be positive, got {interval_ms}")
        if interval_ms == self._interval_ms:
            return
        self._interval_ms = interval_ms
        if self._timer is not None:
            self._cancel_timer()
            self._timer = asyncio.get_running_loop().create_task(self._run())

    def destroy(self) -> None:
        """Cancel the timer; any further control call is misuse."""
        self._cancel_timer()
        self._destroyed = True

    async def _run(self) -> None:
        while self._state is PlaybackState.PLAYING:
            await self._sleep(self._interval_ms / 1000)
            if self._timer is not asyncio.current_task():
                return
            self._advance()

    def _advance(self) -> None:
        if self.at_end:
            self._finish()
            return
        self._index += 1
        if self.at_end:
            self._finish()
        else:
            self._notify()

    def _finish(self) -> None:
        self._cancel_timer()
        self._state = PlaybackState.DONE
        logger.debug(f"Playback reached last index {self._index}")
        self._notify()

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    def _set_state(self, state: PlaybackState) -> None:
        if state is not self._state:
            self._state = state
            self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def _check_destroyed(self, action: str) -> bool:
        if self._destroyed:
            report_misuse(f"{action}() on a destroyed playback clock", self._strict)
            return True
        return False
