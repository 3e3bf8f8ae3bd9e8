"""Track aggregation and diff engine.

Projects the tracks found at one position across many videos into a
single consensus row, and writes an edited row back into every
contributing track. Every track's first edit captures a snapshot of its
original values; later edits are diffed against that snapshot, never
against the previous edit.

All functions are pure: they return updated copies and never mutate
their inputs.
"""

import logging
from collections.abc import Sequence
from typing import TypeVar

from mkvbatch.models.aggregate import (
    DIVERGENT,
    AggregateRow,
    Divergent,
    SkippedWrite,
    TrackEditRow,
    WriteBackReport,
)
from mkvbatch.models.external import ExternalFile
from mkvbatch.models.media import VideoFile
from mkvbatch.models.track import Disposition, Track, TrackKind

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", AggregateRow, TrackEditRow)


# ----------------------------------------------------------------------
# Read path
# ----------------------------------------------------------------------


def _shared(values: list[str]) -> str | None:
    if values and all(v == values[0] for v in values):
        return values[0]
    return None


def _representative(kind: TrackKind, tracks: list[Track]) -> Track:
    if kind == TrackKind.AUDIO:
        for track in tracks:
            if track.bitrate is not None:
                return track
    return tracks[0]


def build_aggregate_rows(videos: Sequence[VideoFile], kind: TrackKind) -> list[AggregateRow]:
    """Build one consensus row per track position of ``kind``.

    Videos with fewer tracks simply contribute nothing at the higher
    positions, so rows never have zero contributors.

    Args:
        videos: Videos in scope, in list order
        kind: Track kind to aggregate

    Returns:
        Rows ordered by position
    """
    track_lists = [v.tracks_of(kind) for v in videos]
    depth = max((len(tl) for tl in track_lists), default=0)

    rows: list[AggregateRow] = []
    for position in range(depth):
        tracks = [tl[position] for tl in track_lists if position < len(tl)]
        if not tracks:
            continue

        name = _shared([t.display_name for t in tracks])
        language = _shared([t.language for t in tracks])

        rows.append(
            AggregateRow(
                kind=kind,
                position=position,
                copy_track=all(not t.is_removed for t in tracks),
                set_default=all(t.is_default is True for t in tracks),
                set_forced=all(t.is_forced is True for t in tracks),
                track_name=name if name else DIVERGENT,
                language=language or "und",
                languages_agree=language is not None,
                representative=_representative(kind, tracks),
                contributor_count=len(tracks),
            )
        )
    return rows


def reset_rows(videos: Sequence[VideoFile], kind: TrackKind) -> list[AggregateRow]:
    """Discard pending row edits by re-projecting the current store data."""
    return build_aggregate_rows(videos, kind)


def track_edit_rows(video: VideoFile, kind: TrackKind) -> list[TrackEditRow]:
    """Rows for the per-file editor, one per track of ``kind``."""
    return [
        TrackEditRow(
            track_id=t.id,
            copy_track=not t.is_removed,
            set_default=t.is_default is True,
            set_forced=t.is_forced is True,
            track_name=t.display_name,
            language=t.language,
        )
        for t in video.tracks_of(kind)
    ]


# ----------------------------------------------------------------------
# Write path
# ----------------------------------------------------------------------


def reconcile_flag(original: bool | None, current: bool | None, new: bool) -> bool | None:
    """Merge an edited flag into a tri-state track flag.

    A flag that was originally unset stays unset when the edit asks for
    ``False``; otherwise the new value replaces the current one.
    """
    if original is None and new is False:
        return None
    if new != current:
        return new
    return current


def apply_edit(
    track: Track,
    *,
    copy_track: bool,
    set_default: bool,
    set_forced: bool,
    name: str | Divergent,
    language: str | None,
) -> Track:
    """Apply one row's values to one track and recompute its disposition.

    Args:
        track: Track to update
        copy_track: False drops the track and clears its flags
        set_default: Requested default flag
        set_forced: Requested forced flag
        name: New name, or ``DIVERGENT`` to leave the name alone
        language: New language, or None to leave it alone

    Returns:
        Updated copy of the track, carrying its original snapshot
    """
    original = track.snapshot()

    if not copy_track:
        set_default = False
        set_forced = False

    updates: dict = {
        "original": original,
        "is_default": reconcile_flag(original.is_default, track.is_default, set_default),
        "is_forced": reconcile_flag(original.is_forced, track.is_forced, set_forced),
    }

    if not isinstance(name, Divergent):
        if not (track.name is None and name == track.display_name):
            updates["name"] = name or None
    if language is not None:
        updates["language"] = language or "und"

    edited = track.model_copy(update=updates)
    if not copy_track:
        disposition = Disposition.REMOVE
    elif edited.differs_from_original():
        disposition = Disposition.MODIFY
    else:
        disposition = Disposition.KEEP
    return edited.model_copy(update={"disposition": disposition})


def _row_language(row: AggregateRow) -> str | None:
    # "und" standing in for divergent languages is not an edit.
    if not row.languages_agree and row.language == "und":
        return None
    return row.language


def write_back(
    videos: Sequence[VideoFile],
    row: AggregateRow,
) -> tuple[list[VideoFile], WriteBackReport]:
    """Write one edited consensus row into every video's track at its position.

    Videos lacking a track at the row's position are skipped and
    reported; the others are still updated.

    Args:
        videos: Videos in scope
        row: Edited aggregate row

    Returns:
        Tuple of (updated video list, report)
    """
    report = WriteBackReport()
    language = _row_language(row)
    updated: list[VideoFile] = []

    for video in videos:
        tracks = video.tracks_of(row.kind)
        if row.position >= len(tracks):
            report.skipped.append(
                SkippedWrite(
                    video_id=video.id,
                    position=row.position,
                    reason=f"No {row.kind.value} track at position {row.position + 1}",
                )
            )
            updated.append(video)
            continue

        tracks = list(tracks)
        tracks[row.position] = apply_edit(
            tracks[row.position],
            copy_track=row.copy_track,
            set_default=row.set_default,
            set_forced=row.set_forced,
            name=row.track_name,
            language=language,
        )
        report.updated += 1
        updated.append(video.replace_tracks_of(row.kind, tracks))

    if report.skipped:
        logger.warning(
            "Write-back of %s row %d skipped %d video(s)",
            row.kind.value,
            row.position + 1,
            len(report.skipped),
        )
    return updated, report


def apply_rows(
    videos: Sequence[VideoFile],
    kind: TrackKind,
    rows: Sequence[AggregateRow],
) -> tuple[list[VideoFile], WriteBackReport]:
    """Write every row of one kind back, accumulating a single report."""
    result = list(videos)
    total = WriteBackReport()
    for row in rows:
        if row.kind != kind:
            continue
        result, report = write_back(result, row)
        total.updated += report.updated
        total.skipped.extend(report.skipped)
    return result, total


def edit_video_tracks(
    video: VideoFile,
    kind: TrackKind,
    rows: Sequence[TrackEditRow],
) -> VideoFile:
    """Apply per-file editor rows to one video.

    Rows are bound to tracks by id. The row order becomes the new order of
    the edited tracks; tracks without a row keep their values and follow
    the edited ones in their original order.

    Args:
        video: Video being edited
        kind: Track kind the rows belong to
        rows: Editor rows, in the desired order

    Returns:
        Updated copy of the video
    """
    by_id = {t.id: t for t in video.tracks_of(kind)}
    ordered: list[Track] = []
    seen: set[str] = set()

    for row in rows:
        track = by_id.get(row.track_id)
        if track is None or row.track_id in seen:
            logger.debug("Ignoring row for unknown track %s", row.track_id)
            continue
        seen.add(row.track_id)
        ordered.append(
            apply_edit(
                track,
                copy_track=row.copy_track,
                set_default=row.set_default,
                set_forced=row.set_forced,
                name=row.track_name,
                language=row.language,
            )
        )

    ordered.extend(t for t in video.tracks_of(kind) if t.id not in seen)
    return video.replace_tracks_of(kind, ordered)


def revert_track(track: Track) -> Track:
    """Restore a track's snapshot values and mark it kept.

    The snapshot itself is left in place.
    """
    original = track.snapshot()
    return track.model_copy(
        update={
            "name": original.name,
            "language": original.language,
            "is_default": original.is_default,
            "is_forced": original.is_forced,
            "disposition": Disposition.KEEP,
            "original": original,
        }
    )


def edit_per_file_externals(
    video_id: str,
    files: Sequence[ExternalFile],
    rows: Sequence[TrackEditRow],
) -> list[ExternalFile]:
    """Apply per-file editor rows to a video's externally attached files.

    Rows are bound to files by id and their order becomes the file order.
    Files whose row has copy unchecked, or that have no row, are dropped.

    Args:
        video_id: Video the files belong to
        files: Current per-file external files of one kind
        rows: Editor rows, in the desired order

    Returns:
        New per-file list for the video
    """
    by_id = {f.id: f for f in files}
    result: list[ExternalFile] = []
    for row in rows:
        ext = by_id.pop(row.track_id, None)
        if ext is None or not row.copy_track:
            continue
        result.append(
            ext.model_copy(
                update={
                    "track_name": row.track_name or None,
                    "language": row.language,
                    "is_default": reconcile_flag(ext.is_default, ext.is_default, row.set_default),
                    "is_forced": reconcile_flag(ext.is_forced, ext.is_forced, row.set_forced),
                    "matched_video_id": video_id,
                }
            )
        )
    return result


# ----------------------------------------------------------------------
# Row toggles
# ----------------------------------------------------------------------


def set_row_copy(row: RowT, value: bool) -> RowT:
    """Toggle copy on one row; unchecking clears its default and forced flags."""
    if value:
        return row.model_copy(update={"copy_track": True})
    return row.model_copy(update={"copy_track": False, "set_default": False, "set_forced": False})


def set_all_copy(rows: Sequence[RowT], value: bool) -> list[RowT]:
    return [set_row_copy(row, value) for row in rows]


def set_all_default(rows: Sequence[RowT], value: bool) -> list[RowT]:
    """Set default on every row; enabling it also enables copy."""
    return [
        row.model_copy(
            update={"set_default": value, "copy_track": True if value else row.copy_track}
        )
        for row in rows
    ]


def set_all_forced(rows: Sequence[RowT], value: bool) -> list[RowT]:
    """Set forced on every row; enabling it also enables copy."""
    return [
        row.model_copy(
            update={"set_forced": value, "copy_track": True if value else row.copy_track}
        )
        for row in rows
    ]
