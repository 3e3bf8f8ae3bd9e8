"""Mux queue domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from mkvbatch.models.mux import MuxStatus

# Allowed status transitions; repeating the current status is a progress update.
TRANSITIONS: dict[MuxStatus, set[MuxStatus]] = {
    MuxStatus.QUEUED: {MuxStatus.PROCESSING, MuxStatus.ERROR},
    MuxStatus.PROCESSING: {MuxStatus.COMPLETED, MuxStatus.ERROR},
    MuxStatus.COMPLETED: set(),
    MuxStatus.ERROR: set(),
}


@dataclass
class MuxJob:
    """Execution status of one submitted JobRequest."""

    id: str
    video_id: str
    video_name: str = ""
    status: MuxStatus = MuxStatus.QUEUED
    progress: int = 0
    message: str = ""
    size_before: int | None = None
    size_after: int | None = None
    error_message: str | None = None
    eta_seconds: float | None = None
    revision: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Check if the job is queued or running."""
        return self.status in (MuxStatus.QUEUED, MuxStatus.PROCESSING)

    def can_move_to(self, status: MuxStatus) -> bool:
        return status == self.status or status in TRANSITIONS[self.status]
