"""Moment-to-snapshot reconciliation."""

from typing import Sequence

from narration_engine.timeline.models import Moment


def reconcile_moments(moments: Sequence[Moment], snapshot_count: int) -> tuple[Moment, ...]:
    """Align the received moment list to the snapshot count.

    - More moments than snapshots: excess trailing moments are dropped.
    - Fewer: the last real moment is repeated, with its follow-up questions
      cleared, until the counts match.
    - No moments: stays empty (snapshot-only playback).

    Args:
        moments: Moments in arrival order.
        snapshot_count: Number of snapshots in the round.

    Returns:
        Reconciled moments; length is snapshot_count unless moments is empty.
    """
    if not moments:
        return ()

    if len(moments) >= snapshot_count:
        return tuple(moments[:snapshot_count])

    padding = moments[-1].as_padding()
    return tuple(moments) + (padding,) * (snapshot_count - len(moments))
