"""Matching resolver: pairs external files with their owning video.

Matches are resolved in priority order: a still-valid assignment made
by the user, then filename containment, then positional pairing of bulk
files. Derived matches are flagged ``auto_matched`` and recomputed on
every pass, so the outcome depends only on the current lists and not on
the order they were built in. Resolution only rewrites
``matched_video_id``/``auto_matched`` and never touches track data.
"""

import logging
import re
from enum import Enum

from pydantic import BaseModel, Field

from mkvbatch.models.external import ExternalFile, Origin
from mkvbatch.models.media import VideoFile

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


class MatchMethod(str, Enum):
    """How an external file got (or failed to get) its video."""

    EXPLICIT = "explicit"
    NAME = "name"
    POSITIONAL = "positional"
    UNMATCHED = "unmatched"


class MatchEntry(BaseModel):
    """Resolution outcome for one external file."""

    file_id: str
    file_name: str
    video_id: str | None = None
    method: MatchMethod
    score: int = 0


class MatchReport(BaseModel):
    """Per-file outcome of one resolver pass, in input order."""

    entries: list[MatchEntry] = Field(default_factory=list)

    @property
    def positional(self) -> list[MatchEntry]:
        """Entries that were paired by list position only."""
        return [e for e in self.entries if e.method == MatchMethod.POSITIONAL]

    @property
    def unmatched(self) -> list[MatchEntry]:
        return [e for e in self.entries if e.method == MatchMethod.UNMATCHED]

    def merged(self, other: "MatchReport") -> "MatchReport":
        """Concatenate two reports (e.g. one per external kind)."""
        return MatchReport(entries=[*self.entries, *other.entries])


def normalize_name(path: str) -> str:
    """Normalize a file name for similarity comparison.

    Lower-cases the base name, strips the final extension and collapses
    runs of non-alphanumerics into single spaces.

    Args:
        path: File path or bare file name (``/`` or ``\\`` separated)

    Returns:
        Normalized name, possibly empty
    """
    base = re.split(r"[\\/]", path)[-1].lower()
    base = _EXTENSION_RE.sub("", base)
    return _NON_ALNUM_RE.sub(" ", base).strip()


def containment_score(a: str, b: str) -> int:
    """Length of the shorter normalized name if one contains the other."""
    if not a or not b:
        return 0
    if b in a:
        return len(b)
    if a in b:
        return len(a)
    return 0


def best_name_match(file_name: str, videos: list[VideoFile]) -> tuple[int, int] | None:
    """Find the video whose name best contains (or is contained by) a file name.

    Args:
        file_name: External file path or name
        videos: Candidate videos, in list order

    Returns:
        ``(video_index, score)`` of the best positive match, or None.
        Ties go to the lowest index.
    """
    needle = normalize_name(file_name)
    if not needle:
        return None

    best: tuple[int, int] | None = None
    for index, video in enumerate(videos):
        score = containment_score(needle, normalize_name(video.file_name))
        if score > 0 and (best is None or score > best[1]):
            best = (index, score)
    return best


def resolve_matches(
    files: list[ExternalFile],
    videos: list[VideoFile],
) -> tuple[list[ExternalFile], MatchReport]:
    """Resolve the owning video of every file in one list.

    Per-file-origin files are never re-paired: a per-file file whose
    video disappeared becomes unmatched.

    Args:
        files: External files of one list (one kind), in list order
        videos: Current video list, in list order

    Returns:
        Tuple of (updated file copies, match report). Files whose match did
        not change are returned as-is.
    """
    video_ids = {v.id for v in videos}
    methods: list[MatchMethod] = []
    targets: list[str | None] = []
    scores: list[int] = []
    claimed: set[str] = set()

    for ext in files:
        assigned = ext.origin == Origin.PER_FILE or not ext.auto_matched
        if assigned and ext.matched_video_id in video_ids:
            methods.append(MatchMethod.EXPLICIT)
            targets.append(ext.matched_video_id)
            scores.append(0)
            claimed.add(ext.matched_video_id)
            continue

        if ext.origin == Origin.BULK:
            best = best_name_match(ext.file_name, videos)
            if best is not None:
                index, score = best
                methods.append(MatchMethod.NAME)
                targets.append(videos[index].id)
                scores.append(score)
                claimed.add(videos[index].id)
                continue

        methods.append(MatchMethod.UNMATCHED)
        targets.append(None)
        scores.append(0)

    bulk_index = -1
    for i, ext in enumerate(files):
        if ext.origin != Origin.BULK:
            continue
        bulk_index += 1
        if methods[i] != MatchMethod.UNMATCHED or bulk_index >= len(videos):
            continue
        candidate = videos[bulk_index]
        if candidate.id in claimed:
            continue
        methods[i] = MatchMethod.POSITIONAL
        targets[i] = candidate.id
        logger.debug("Positional match: %s -> %s", ext.file_name, candidate.file_name)

    resolved: list[ExternalFile] = []
    entries: list[MatchEntry] = []
    for ext, method, target, score in zip(files, methods, targets, scores):
        auto = method in (MatchMethod.NAME, MatchMethod.POSITIONAL)
        if method != MatchMethod.EXPLICIT and (
            ext.matched_video_id != target or ext.auto_matched != auto
        ):
            ext = ext.model_copy(update={"matched_video_id": target, "auto_matched": auto})
        resolved.append(ext)
        entries.append(
            MatchEntry(
                file_id=ext.id,
                file_name=ext.file_name,
                video_id=target,
                method=method,
                score=score,
            )
        )

    report = MatchReport(entries=entries)
    if report.unmatched:
        logger.info("%d external file(s) left unmatched", len(report.unmatched))
    return resolved, report
