"""Player name resolution.

Narration and chat text refer to players by opaque ids (e.g. "c9_3"). The
resolver swaps each known id for its display name before display.
"""

import logging
import re
from types import MappingProxyType
from typing import Iterable, Mapping

from narration_engine.timeline.models import Snapshot

logger = logging.getLogger(__name__)


def _build_pattern(ids: Iterable[str]) -> re.Pattern[str] | None:
    """Alternation of ids, longest first, so "c9_31" wins over "c9_3"."""
    ordered = sorted((i for i in ids if i), key=len, reverse=True)
    if not ordered:
        return None
    return re.compile("|".join(re.escape(i) for i in ordered))


def resolve_names(text: str, id_to_name: Mapping[str, str]) -> str:
    """Replace every known player id in text with its display name.

    Substitution is a single pass over the text, trying longer ids first,
    so ids that prefix other ids never corrupt them and inserted names are
    never rescanned.

    Args:
        text: Narration or chat text.
        id_to_name: Player id to display name.

    Returns:
        Text with ids replaced.
    """
    pattern = _build_pattern(id_to_name)
    if pattern is None or not text:
        return text
    return pattern.sub(lambda m: id_to_name[m.group(0)], text)


class NameResolver:
    """Resolver bound to one read-only id map, with the pattern precompiled."""

    def __init__(self, id_to_name: Mapping[str, str]) -> None:
        self._names = MappingProxyType(dict(id_to_name))
        self._pattern = _build_pattern(self._names)

    @property
    def names(self) -> Mapping[str, str]:
        """Read-only id to name map."""
        return self._names

    def resolve(self, text: str) -> str:
        """Replace known ids in text. See resolve_names."""
        if self._pattern is None or not text:
            return text
        return self._pattern.sub(lambda m: self._names[m.group(0)], text)

    def __call__(self, text: str) -> str:
        return self.resolve(text)


class PlayerNameCache:
    """Explicitly owned player id to name cache.

    Later snapshots sometimes omit names, so names are learned once and kept
    for the lifetime of the owning round/session. The first name seen for an
    id wins. Discard with clear() on reset.
    """

    def __init__(self) -> None:
        self._names: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._names

    def get(self, player_id: str, default: str | None = None) -> str | None:
        """Look up a display name."""
        return self._names.get(player_id, default)

    def remember(self, player_id: str, name: str | None) -> bool:
        """Record a name unless one is already known.

        Returns:
            True if the name was stored.
        """
        if not player_id or not name or player_id in self._names:
            return False
        self._names[player_id] = name
        return True

    def learn(self, snapshots: Iterable[Snapshot]) -> int:
        """Learn names from snapshot rosters in order.

        Returns:
            Number of new names stored.
        """
        learned = 0
        for snapshot in snapshots:
            for player in snapshot.players:
                if self.remember(player.player_id, player.name):
                    learned += 1
        if learned:
            logger.debug(f"Learned {learned} player names ({len(self._names)} total)")
        return learned

    def clear(self) -> None:
        """Forget all names."""
        self._names.clear()

    def as_mapping(self) -> Mapping[str, str]:
        """Read-only copy of the current map."""
        return MappingProxyType(dict(self._names))

    def resolver(self) -> NameResolver:
        """Freeze the current names into a resolver."""
        return NameResolver(self._names)
