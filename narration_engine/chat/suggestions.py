"""Suggested chat prompts derived from the round state."""

from dataclasses import dataclass
from typing import Any, Mapping

from narration_engine.timeline.models import RoundContext, Snapshot
from narration_engine.timeline.names import NameResolver

MAX_WHAT_IF_PROMPTS = 3


@dataclass(frozen=True)
class SuggestedPrompt:
    """A one-click question offered next to the chat input.

    Attributes:
        label: Short button text.
        text: Full question sent when clicked.
        kind: "what_if", "outcome" or "tendencies".
    """

    label: str
    text: str
    kind: str


def suggest_prompts(
    snapshot: Snapshot | None,
    context: RoundContext,
    final_state: Mapping[str, Any] | None = None,
    resolver: NameResolver | None = None,
) -> list[SuggestedPrompt]:
    """Build suggested questions for the displayed snapshot.

    Args:
        snapshot: Snapshot on screen (usually the active one).
        context: Map and team names.
        final_state: Round outcome; `spike_planted` counts as an attack win.
        resolver: Maps player ids to display names.

    Returns:
        What-if prompts for up to three dead players, then why the winning
        side won, then the defending team's tendencies.
    """
    players = snapshot.players if snapshot is not None else ()
    final_state = final_state or {}
    name_of = resolver.resolve if resolver is not None else (lambda text: text)

    prompts: list[SuggestedPrompt] = []
    dead = [p for p in players if not p.is_alive]
    for player in dead[:MAX_WHAT_IF_PROMPTS]:
        name = name_of(player.player_id)
        prompts.append(
            SuggestedPrompt(
                label=f"What if {name} survived?",
                text=f"What if {name} survived that duel? How would the round outcome change?",
                kind="what_if",
            )
        )

    attack_alive = sum(1 for p in players if p.side == "attack" and p.is_alive)
    winner = "attack" if attack_alive > 0 or bool(final_state.get("spike_planted")) else "defense"
    prompts.append(
        SuggestedPrompt(
            label=f"Why did {winner} win?",
            text=(
                f"Break down why {winner} won this round. "
                "What were the key decisions and turning points?"
            ),
            kind="outcome",
        )
    )

    opponent = context.defense_team or "the opponent"
    map_name = context.map_name or "this map"
    prompts.append(
        SuggestedPrompt(
            label=f"{opponent} tendencies",
            text=(
                f"What are {opponent}'s tendencies on {map_name}? "
                "How should we exploit their patterns?"
            ),
            kind="tendencies",
        )
    )
    return prompts
