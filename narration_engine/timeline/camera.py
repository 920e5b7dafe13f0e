"""Camera Follow Controller.

Derives the viewport target (focus point + zoom) from the active moment. The
renderer owns the animation; this controller only holds the latest target
and a version counter so renderers can tell a new target from a re-read.
"""

from dataclasses import dataclass

from narration_engine.timeline.models import Moment

FOCUS_LABEL_LENGTH = 80


@dataclass(frozen=True)
class CameraTarget:
    """Target view transform in normalized map space."""

    focus_x: float
    focus_y: float
    zoom: float


# Renderers reset to this view when the target is None
IDENTITY_VIEW = CameraTarget(focus_x=0.5, focus_y=0.5, zoom=1.0)


def derive_target(moment: Moment | None) -> CameraTarget | None:
    """Camera target for a moment; None when no moment is active."""
    if moment is None:
        return None
    return CameraTarget(focus_x=moment.focus_x, focus_y=moment.focus_y, zoom=moment.zoom)


class CameraFollowController:
    """Holds the derived target for the active moment."""

    def __init__(self) -> None:
        self._moment: Moment | None = None
        self._target: CameraTarget | None = None
        self._focus_version = 0

    @property
    def target(self) -> CameraTarget | None:
        return self._target

    @property
    def focus_version(self) -> int:
        """Incremented every time a new target is set."""
        return self._focus_version

    @property
    def highlighted_players(self) -> tuple[str, ...]:
        if self._moment is None:
            return ()
        return self._moment.highlight_players

    @property
    def focus_label(self) -> str:
        """Short caption for the focused moment."""
        if self._moment is None:
            return ""
        return self._moment.narration[:FOCUS_LABEL_LENGTH]

    def follow(self, moment: Moment | None) -> CameraTarget | None:
        """Point the camera at a moment (or release it with None).

        Returns:
            The current target.
        """
        if moment == self._moment:
            return self._target
        self._moment = moment
        self._target = derive_target(moment)
        self._focus_version += 1
        return self._target

    def reset(self) -> None:
        """Release the camera; renderers return to the identity view."""
        self.follow(None)
