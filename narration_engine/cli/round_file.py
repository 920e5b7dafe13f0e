"""Loading replay rounds from JSON files."""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from narration_engine.exceptions import EngineError
from narration_engine.timeline import MatchContext, RoundContext, Snapshot


class RoundFileError(EngineError):
    """Round file is missing, unreadable, or not a replay."""


class RoundFile(BaseModel):
    """A recorded round: snapshots, outcome and metadata."""

    snapshots: list[Snapshot] = Field(default_factory=list)
    final_state: dict[str, Any] = Field(default_factory=dict)
    events: list[dict[str, Any]] = Field(default_factory=list)
    map_name: str = ""
    attack_team: str = "Attack"
    defense_team: str = "Defense"
    match_context: MatchContext | None = None

    def round_context(self) -> RoundContext:
        return RoundContext.from_snapshots(
            self.snapshots,
            map_name=self.map_name,
            attack_team=self.attack_team,
            defense_team=self.defense_team,
            match_context=self.match_context,
        )


def load_round_file(path: Path) -> RoundFile:
    """Read and validate a round file.

    Args:
        path: JSON file with a `snapshots` list and optional metadata.

    Returns:
        Validated RoundFile.

    Raises:
        RoundFileError: If the file cannot be read or does not validate.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise RoundFileError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise RoundFileError(f"{path} is not valid JSON: {e}") from e

    try:
        return RoundFile.model_validate(raw)
    except ValidationError as e:
        raise RoundFileError(f"{path} is not a round file: {e.error_count()} errors") from e
