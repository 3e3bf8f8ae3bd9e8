"""External file models: audio, subtitle, chapter and attachment sources."""

from enum import Enum
from pathlib import PurePath
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mkvbatch.models.track import Track, TrackKind


class ExternalKind(str, Enum):
    """Kind of external file injected into a video's output."""

    AUDIO = "audio"
    SUBTITLE = "subtitle"
    CHAPTER = "chapter"
    ATTACHMENT = "attachment"

    @property
    def track_kind(self) -> TrackKind | None:
        """Embedded stream kind this file contributes, if any."""
        return {
            ExternalKind.AUDIO: TrackKind.AUDIO,
            ExternalKind.SUBTITLE: TrackKind.SUBTITLE,
        }.get(self)


class Origin(str, Enum):
    """How an external file was attached to its video."""

    BULK = "bulk"
    PER_FILE = "per-file"


class TrackOverride(BaseModel):
    """Per-stream overrides for an embedded track of an external file."""

    model_config = ConfigDict(populate_by_name=True)

    language: str | None = None
    delay: float | None = None
    track_name: str | None = Field(None, alias="trackName")


class ExternalFile(BaseModel):
    """A standalone file to be muxed into one video.

    ``matched_video_id`` is a weak reference: a plain id that the
    matching resolver re-validates after every structural change. Only
    assigned ids (``auto_matched`` false) survive a pass; derived ones
    are worked out again each time.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    path: str = Field(..., description="File path")
    name: str = Field("", description="Display name")
    kind: ExternalKind = Field(..., alias="type")
    origin: Origin = Field(Origin.BULK, alias="source")
    matched_video_id: str | None = Field(None, alias="matchedVideoId")
    auto_matched: bool = Field(
        False,
        alias="autoMatched",
        description="matched_video_id was derived by name or position, not assigned",
    )
    language: str | None = None
    track_name: str | None = Field(None, alias="trackName")
    delay: float = Field(0.0, description="Sync delay in seconds (signed)")
    is_default: bool | None = Field(None, alias="isDefault")
    is_forced: bool | None = Field(None, alias="isForced")
    mux_after: str = Field("video", alias="muxAfter")
    size: int | None = None
    bitrate: int | None = None
    duration: str | None = None
    track_id: str | None = Field(None, alias="trackId")
    tracks: list[Track] = Field(default_factory=list, description="Embedded streams")
    included_track_ids: list[str] | None = Field(None, alias="includedTrackIds")
    include_subtitles: bool = Field(False, alias="includeSubtitles")
    included_subtitle_track_ids: list[str] | None = Field(
        None, alias="includedSubtitleTrackIds"
    )
    track_overrides: dict[str, TrackOverride] = Field(
        default_factory=dict, alias="trackOverrides"
    )

    @model_validator(mode="after")
    def validate_included_ids(self) -> "ExternalFile":
        """Ensure selected stream ids exist in the embedded payload."""
        known = {t.id for t in self.tracks}
        for field_name in ("included_track_ids", "included_subtitle_track_ids"):
            selected = getattr(self, field_name)
            if selected is None:
                continue
            unknown = [tid for tid in selected if tid not in known]
            if unknown:
                raise ValueError(f"{field_name} not in embedded tracks: {unknown}")
        return self

    @property
    def file_name(self) -> str:
        """Return the last path component (falls back to the display name)."""
        return PurePath(self.path.replace("\\", "/")).name or self.name

    @property
    def is_bulk(self) -> bool:
        """Check if this file came from a folder-wide (bulk) scan."""
        return self.origin == Origin.BULK
