"""Placement ordering of external files destined for one video."""

import math
from collections.abc import Iterable

from mkvbatch.models.external import ExternalFile, Origin

END_RANK = 99

_TRACK_PREFIX = "track-"


def placement_rank(mux_after: str | None) -> float:
    """Rank of a ``mux_after`` placement directive.

    ``video``/``audio`` anchors and unknown values rank 0 and ``end`` ranks
    last. ``track-N`` ranks N, fractions included; a blank N ranks 0 and
    an N that is not a finite number ranks 1.
    """
    if not mux_after or mux_after in ("video", "audio"):
        return 0
    if mux_after == "end":
        return END_RANK
    if not mux_after.startswith(_TRACK_PREFIX):
        return 0
    suffix = mux_after[len(_TRACK_PREFIX) :].strip()
    if not suffix:
        return 0
    try:
        rank = float(suffix)
    except ValueError:
        return 1
    return rank if math.isfinite(rank) else 1


def source_precedence(origin: Origin) -> int:
    return 0 if origin == Origin.BULK else 1


def order_by_placement(files: Iterable[ExternalFile]) -> list[ExternalFile]:
    """Sort files by placement rank, then origin, keeping input order for ties."""
    return sorted(
        files,
        key=lambda f: (placement_rank(f.mux_after), source_precedence(f.origin)),
    )
