"""Timeline data models.

Snapshots and moments are wire payloads, so they are frozen pydantic models
that validate incoming dicts and dump back to the collaborator's format.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationInfo


class PlaybackState(str, Enum):
    """Lifecycle of a timeline's playback."""

    IDLE = "idle"  # Constructed, stream not opened
    LOADING = "loading"  # Narration stream open
    READY = "ready"  # Reconciled (or stopped), not playing
    PLAYING = "playing"
    PAUSED = "paused"
    DONE = "done"  # Reached the last index while playing


class PlayerState(BaseModel):
    """One player's state inside a snapshot."""

    model_config = ConfigDict(frozen=True, extra="allow")

    player_id: str
    x: float
    y: float
    side: str
    is_alive: bool = True
    facing_angle: float | None = None
    has_spike: bool | None = None
    name: str | None = None
    team_id: str | None = None
    agent: str | None = None
    health: float | None = None
    weapon_name: str | None = None
    role: str | None = None


class Snapshot(BaseModel):
    """Immutable point-in-time simulation record."""

    model_config = ConfigDict(frozen=True, extra="allow")

    time_ms: int
    phase: str
    players: tuple[PlayerState, ...] = ()
    spike_planted: bool | None = None
    spike_site: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Dump in the collaborator's wire format."""
        return self.model_dump(mode="json", exclude_none=True)


class Moment(BaseModel):
    """One unit of streamed narration tied to a snapshot index."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    moment_index: int = 0
    focus_x: float = 0.5
    focus_y: float = 0.5
    zoom: float = 1.0
    narration: str = ""
    what_if_questions: tuple[str, ...] = ()
    highlight_players: tuple[str, ...] = ()

    @field_validator("what_if_questions", "highlight_players", "narration", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        """Collaborators send null for absent lists and text."""
        if value is None:
            return "" if info.field_name == "narration" else ()
        return value

    def as_padding(self) -> "Moment":
        """Copy used to pad a short narration; pads never offer follow-ups."""
        return self.model_copy(update={"what_if_questions": ()})


class RosterEntry(BaseModel):
    """Player roster entry sent to collaborators."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    agent: str = ""
    side: str = ""
    team: str = ""


class MatchContext(BaseModel):
    """Optional match metadata for chat context."""

    model_config = ConfigDict(frozen=True)

    teams: tuple[str, ...] = ()
    tournament: str = ""
    date: str = ""
    round_num: int = 0


class RoundContext(BaseModel):
    """Round metadata sent alongside snapshots."""

    model_config = ConfigDict(frozen=True)

    map_name: str = ""
    attack_team: str = "Attack"
    defense_team: str = "Defense"
    player_roster: tuple[RosterEntry, ...] = ()
    match_context: MatchContext | None = None

    @classmethod
    def from_snapshots(
        cls,
        snapshots: "tuple[Snapshot, ...] | list[Snapshot]",
        map_name: str = "",
        attack_team: str = "Attack",
        defense_team: str = "Defense",
        match_context: MatchContext | None = None,
    ) -> "RoundContext":
        """Build a context whose roster comes from the first snapshot.

        Args:
            snapshots: Round snapshots.
            map_name: Map being played.
            attack_team: Attacking team name.
            defense_team: Defending team name.
            match_context: Optional match metadata.

        Returns:
            RoundContext with one roster entry per first-snapshot player.
        """
        roster: list[RosterEntry] = []
        if snapshots:
            for player in snapshots[0].players:
                roster.append(
                    RosterEntry(
                        id=player.player_id,
                        name=player.name or player.player_id,
                        agent=player.agent or "",
                        side=player.side,
                        team=player.team_id or player.side,
                    )
                )
        return cls(
            map_name=map_name,
            attack_team=attack_team,
            defense_team=defense_team,
            player_roster=tuple(roster),
            match_context=match_context,
        )

    def roster_payload(self) -> list[dict[str, str]]:
        """Dump the roster in the collaborator's wire format."""
        return [entry.model_dump() for entry in self.player_roster]


class NarrationRequest(BaseModel):
    """Body of the narration stream request."""

    session_id: str
    snapshots: list[dict[str, Any]]
    final_state: dict[str, Any] = Field(default_factory=dict)
    map_name: str = ""
    attack_team: str = ""
    defense_team: str = ""
    player_roster: list[dict[str, str]] = Field(default_factory=list)
