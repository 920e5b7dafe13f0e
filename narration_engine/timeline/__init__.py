"""Narration timeline, playback clock, camera follow and name resolution."""

# Models
from narration_engine.timeline.models import (
    MatchContext,
    Moment,
    PlaybackState,
    PlayerState,
    RosterEntry,
    RoundContext,
    Snapshot,
)

# Components
from narration_engine.timeline.camera import (
    IDENTITY_VIEW,
    CameraFollowController,
    CameraTarget,
    derive_target,
)
from narration_engine.timeline.clock import PlaybackClock
from narration_engine.timeline.names import NameResolver, PlayerNameCache, resolve_names
from narration_engine.timeline.narration import NarrationTimeline, build_timeline
from narration_engine.timeline.reconcile import reconcile_moments

__all__ = [
    # Models
    "MatchContext",
    "Moment",
    "PlaybackState",
    "PlayerState",
    "RosterEntry",
    "RoundContext",
    "Snapshot",
    # Components
    "IDENTITY_VIEW",
    "CameraFollowController",
    "CameraTarget",
    "derive_target",
    "PlaybackClock",
    "NameResolver",
    "PlayerNameCache",
    "resolve_names",
    "NarrationTimeline",
    "build_timeline",
    "reconcile_moments",
]
