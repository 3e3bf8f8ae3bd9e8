"""Data models for mkvbatch."""

from mkvbatch.models.aggregate import (
    DIVERGENT,
    AggregateRow,
    Divergent,
    SkippedWrite,
    TrackEditRow,
    WriteBackReport,
)
from mkvbatch.models.external import ExternalFile, ExternalKind, Origin, TrackOverride
from mkvbatch.models.job import JobRequest, ResolvedExternalTrack
from mkvbatch.models.media import FileStatus, VideoFile
from mkvbatch.models.mux import (
    MuxProgressEvent,
    MuxSettings,
    MuxStatus,
    PreviewPlan,
    PreviewResult,
)
from mkvbatch.models.preset import Preset, TrackConfig
from mkvbatch.models.scan import InspectChunk
from mkvbatch.models.track import Disposition, Track, TrackKind, TrackSnapshot

__all__ = [
    # Track
    "Track",
    "TrackKind",
    "TrackSnapshot",
    "Disposition",
    # Media
    "VideoFile",
    "FileStatus",
    # External
    "ExternalFile",
    "ExternalKind",
    "Origin",
    "TrackOverride",
    # Job
    "JobRequest",
    "ResolvedExternalTrack",
    # Mux
    "MuxSettings",
    "MuxStatus",
    "MuxProgressEvent",
    "PreviewPlan",
    "PreviewResult",
    # Aggregate
    "AggregateRow",
    "TrackEditRow",
    "Divergent",
    "DIVERGENT",
    "SkippedWrite",
    "WriteBackReport",
    # Preset
    "Preset",
    "TrackConfig",
    # Scan
    "InspectChunk",
]
