"""Context bundle sent with every chat message.

The chat collaborator answers questions about the round being replayed, so
each request carries a bounded excerpt of it: a slice of snapshots and
events, the roster, and what is on screen right now.
"""

from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field

from narration_engine.timeline.models import RoundContext, Snapshot


class SimulationContext(BaseModel):
    """Round excerpt attached to a chat request."""

    snapshots: list[dict[str, Any]] = Field(default_factory=list)
    final_state: dict[str, Any] = Field(default_factory=dict)
    map_name: str = ""
    attack_team: str = ""
    defense_team: str = ""
    events: list[dict[str, Any]] = Field(default_factory=list)
    player_roster: list[dict[str, str]] = Field(default_factory=list)
    current_moment_index: int = 0
    current_narration: str = ""
    match_context: dict[str, Any] | None = None


class ChatRequest(BaseModel):
    """Body of the chat stream request."""

    message: str
    session_id: str | None = None
    map_context: str | None = None
    team_context: str | None = None
    use_tools: bool = True
    simulation_context: SimulationContext | None = None


def snapshot_excerpt(snapshot: Snapshot) -> dict[str, Any]:
    """Compact per-snapshot summary; full player lists are too large."""
    excerpt: dict[str, Any] = {"time_ms": snapshot.time_ms, "phase": snapshot.phase}
    if snapshot.spike_planted is not None:
        excerpt["spike_planted"] = snapshot.spike_planted
    return excerpt


def build_simulation_context(
    snapshots: Sequence[Snapshot],
    context: RoundContext,
    final_state: Mapping[str, Any] | None = None,
    events: Sequence[Mapping[str, Any]] = (),
    current_index: int = 0,
    current_narration: str = "",
    snapshot_limit: int = 20,
    event_limit: int = 30,
) -> SimulationContext:
    """Build the bounded context bundle for one chat request.

    Args:
        snapshots: Round snapshots.
        context: Map, teams, roster and match metadata.
        final_state: Round outcome.
        events: Round events (kills, plants, ...).
        current_index: Active index at the time of the question.
        current_narration: Narration text of the active moment.
        snapshot_limit: Maximum snapshots included.
        event_limit: Maximum events included.

    Returns:
        SimulationContext ready to serialize.
    """
    match_context = None
    if context.match_context is not None:
        match_context = context.match_context.model_dump(mode="json")

    return SimulationContext(
        snapshots=[snapshot_excerpt(s) for s in snapshots[:snapshot_limit]],
        final_state=dict(final_state or {}),
        map_name=context.map_name,
        attack_team=context.attack_team,
        defense_team=context.defense_team,
        events=[dict(e) for e in events[:event_limit]],
        player_roster=context.roster_payload(),
        current_moment_index=current_index,
        current_narration=current_narration,
        match_context=match_context,
    )
