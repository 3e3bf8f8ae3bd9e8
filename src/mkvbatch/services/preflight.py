"""Pre-flight validation of assembled jobs and mux settings."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from pathlib import PureWindowsPath, PurePosixPath
from typing import TYPE_CHECKING

from mkvbatch.errors import SettingsError
from mkvbatch.models.external import ExternalKind
from mkvbatch.models.job import JobRequest
from mkvbatch.models.media import VideoFile
from mkvbatch.models.mux import MuxSettings, PreviewPlan, PreviewResult
from mkvbatch.services.matching import MatchReport

if TYPE_CHECKING:
    from mkvbatch.store import EntityStore

logger = logging.getLogger(__name__)

MAX_PARALLEL_JOBS = 12
UNMATCHED_JOB_ID = "unmatched"

_MISSING_LABELS = {
    ExternalKind.AUDIO: "Audio",
    ExternalKind.SUBTITLE: "Subtitle",
    ExternalKind.CHAPTER: "Chapter",
    ExternalKind.ATTACHMENT: "Attachment",
}


def validate_settings(settings: MuxSettings) -> None:
    """Reject settings that leave the output location undefined.

    Raises:
        SettingsError: If no destination is set and overwriting is off
    """
    if not settings.destination_dir.strip() and not settings.overwrite_source:
        raise SettingsError("Set a destination folder or enable overwrite source.")


def is_overwrite_mode(settings: MuxSettings) -> bool:
    """Check if outputs replace their source files."""
    return not settings.destination_dir.strip() or settings.overwrite_source


def output_path(video: VideoFile, settings: MuxSettings) -> str:
    """Final output path of a video: ``<dir>/<stem>.mkv``.

    ``<dir>`` is the destination directory, or the video's own directory
    when no destination is set.
    """
    pure = PureWindowsPath(video.path) if "\\" in video.path else PurePosixPath(video.path)
    directory = settings.destination_dir.strip() or str(pure.parent)
    stem = pure.stem or "output"
    return str(type(pure)(directory) / f"{stem}.mkv")


def effective_settings(
    settings: MuxSettings,
    job_count: int,
    cpu_count: int | None = None,
) -> MuxSettings:
    """Settings with parallelism clamped to the job count and CPU count."""
    cpus = cpu_count or os.cpu_count() or MAX_PARALLEL_JOBS
    parallel = max(1, min(job_count, cpus, MAX_PARALLEL_JOBS))
    return settings.model_copy(update={"max_parallel_jobs": parallel})


def _job_warnings(
    job: JobRequest,
    exists: Callable[[str], bool],
    report: MatchReport | None,
) -> list[str]:
    warnings: list[str] = []
    if not exists(job.video.path):
        warnings.append(f"Video file missing: {job.video.path}")

    seen: set[str] = set()
    for entry in job.all_external():
        if entry.path in seen:
            continue
        seen.add(entry.path)
        if not exists(entry.path):
            warnings.append(f"{_MISSING_LABELS[entry.kind]} file missing: {entry.path}")

    if report is not None:
        sources = {e.source_id for e in job.all_external()}
        for match in report.positional:
            if match.file_id in sources:
                warnings.append(
                    f"Matched by position only: {match.file_name} -> {job.video.file_name}"
                )

    for track in job.video.tracks:
        if track.is_removed and track.snapshot().is_default:
            warnings.append(
                f"Removed {track.kind.value} track is flagged default: {track.display_name}"
            )
    return warnings


def validate_jobs(
    jobs: Sequence[JobRequest],
    settings: MuxSettings,
    match_report: MatchReport | None = None,
    exists: Callable[[str], bool] = os.path.exists,
) -> list[PreviewResult]:
    """Validate jobs without executing them.

    Args:
        jobs: Assembled job requests
        settings: Mux settings the jobs would run with
        match_report: Resolver outcome, for positional and unmatched warnings
        exists: Filesystem existence check

    Returns:
        One result per job, plus an ``unmatched`` entry when external files
        were left without a video

    Raises:
        SettingsError: If the settings are incomplete
    """
    validate_settings(settings)

    results: list[PreviewResult] = []
    for job in jobs:
        results.append(
            PreviewResult(
                job_id=job.id,
                warnings=_job_warnings(job, exists, match_report),
                plan=PreviewPlan(
                    video=job.video.path,
                    output=output_path(job.video, settings),
                    audios=list(job.audios),
                    subtitles=list(job.subtitles),
                    chapters=list(job.chapters),
                    attachments=list(job.attachments),
                ),
            )
        )

    if match_report is not None and match_report.unmatched:
        results.append(
            PreviewResult(
                job_id=UNMATCHED_JOB_ID,
                warnings=[
                    f"Unmatched external file: {e.file_name}" for e in match_report.unmatched
                ],
            )
        )

    total = sum(len(r.warnings) for r in results)
    logger.info("Validated %d job(s): %d warning(s)", len(jobs), total)
    return results


def fast_mux_available(store: EntityStore, settings: MuxSettings) -> bool:
    """Check if jobs only edit headers, so mkvpropedit can replace a remux.

    Requires no external files, no removed tracks and no language rules.
    """
    videos = store.videos
    has_external = any(store.externals(kind) for kind in ExternalKind) or any(
        store.per_file(v.id, kind) for v in videos for kind in ExternalKind
    )
    has_removed = any(t.is_removed for v in videos for t in v.tracks)
    return not has_external and not has_removed and not settings.has_language_filters
