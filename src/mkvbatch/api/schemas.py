"""Request and response schemas for the mkvbatch API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from mkvbatch.models.aggregate import AggregateRow
from mkvbatch.models.external import ExternalFile, ExternalKind
from mkvbatch.models.job import JobRequest
from mkvbatch.models.media import VideoFile
from mkvbatch.models.mux import MuxSettings, PreviewResult
from mkvbatch.models.track import TrackKind
from mkvbatch.services.matching import MatchReport
from mkvbatch.store import StoreSnapshot


# ------------------------------------------------------------------
# Session requests
# ------------------------------------------------------------------


class SessionRequest(BaseModel):
    session: StoreSnapshot = Field(..., description="Videos and external files")


class PreviewRequest(SessionRequest):
    settings: MuxSettings = Field(default_factory=MuxSettings, description="Mux settings")


class AggregateRequest(SessionRequest):
    kind: TrackKind = Field(..., description="Track kind to aggregate")


class InspectRequest(BaseModel):
    paths: list[str] = Field(..., description="Paths to inspect")
    kind: ExternalKind | None = Field(None, description="External kind, or null for videos")
    include_tracks: bool = Field(True, description="Report embedded streams")


# ------------------------------------------------------------------
# Session responses
# ------------------------------------------------------------------


class AssembleResponse(BaseModel):
    revision: int
    jobs: list[JobRequest] = Field(default_factory=list)
    matches: MatchReport = Field(default_factory=MatchReport)


class PreviewResponse(BaseModel):
    results: list[PreviewResult] = Field(default_factory=list)
    fast_mux_available: bool = False


class AggregateResponse(BaseModel):
    kind: TrackKind
    rows: list[AggregateRow] = Field(default_factory=list)


class InspectResponse(BaseModel):
    items: list[VideoFile | ExternalFile] = Field(default_factory=list)


# ------------------------------------------------------------------
# Queue responses
# ------------------------------------------------------------------


class QueueJobItem(BaseModel):
    job_id: str
    video_id: str
    video_name: str
    status: str
    progress: int = 0
    message: str = ""
    error_message: str | None = None
    eta_seconds: float | None = None
    created_at: datetime
    completed_at: datetime | None = None


class EnqueueResponse(BaseModel):
    revision: int
    queued: int


class StopResponse(BaseModel):
    stopped: int
