"""Media-related data models."""

from enum import Enum
from pathlib import PurePath
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from mkvbatch.models.track import Track, TrackKind


class FileStatus(str, Enum):
    """Lifecycle status of a video file in the workspace."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class VideoFile(BaseModel):
    """A primary media container; owns its internal track list.

    The order of ``tracks`` is the on-disk stream order unless the user
    reordered it in the per-file editor.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    path: str = Field(..., description="File path")
    name: str = Field("", description="Display name")
    size: int = Field(0, ge=0, description="File size in bytes")
    duration: str | None = Field(None, description="Duration as reported by the inspector")
    fps: float | None = Field(None, description="Frames per second")
    status: FileStatus = Field(FileStatus.PENDING, description="Lifecycle status")
    tracks: list[Track] = Field(default_factory=list, description="Internal tracks")

    @property
    def file_name(self) -> str:
        """Return the last path component (falls back to the display name)."""
        return PurePath(self.path.replace("\\", "/")).name or self.name

    def tracks_of(self, kind: TrackKind) -> list[Track]:
        """Return the tracks of one kind, in stream order."""
        return [t for t in self.tracks if t.kind == kind]

    def replace_tracks_of(self, kind: TrackKind, replacements: list[Track]) -> "VideoFile":
        """Return a copy with the tracks of ``kind`` replaced slot by slot.

        Tracks of other kinds keep their positions. If ``replacements`` is
        shorter than the existing list, the surplus tracks are left as they
        were.
        """
        pending = iter(replacements)
        merged: list[Track] = []
        for track in self.tracks:
            if track.kind == kind:
                merged.append(next(pending, track))
            else:
                merged.append(track)
        return self.model_copy(update={"tracks": merged})
