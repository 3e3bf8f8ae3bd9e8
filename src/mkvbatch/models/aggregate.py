"""Consensus rows projected across many videos' track lists."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from mkvbatch.models.track import Track, TrackKind


class Divergent(BaseModel):
    """Marker for a consensus value that differs between contributors.

    Serialized as ``{"divergent": true}`` so it can never collide with a
    real track name.
    """

    model_config = ConfigDict(frozen=True)

    divergent: Literal[True] = True


DIVERGENT = Divergent()


class AggregateRow(BaseModel):
    """One row of the bulk track editor: the consensus at one position."""

    model_config = ConfigDict(populate_by_name=True)

    kind: TrackKind
    position: int = Field(..., ge=0, description="Index within each video's tracks of this kind")
    copy_track: bool = Field(True, alias="copyTrack")
    set_default: bool = Field(False, alias="setDefault")
    set_forced: bool = Field(False, alias="setForced")
    track_name: str | Divergent = Field("", alias="trackName")
    language: str = "und"
    languages_agree: bool = Field(True, alias="languagesAgree")
    representative: Track | None = None
    contributor_count: int = Field(0, ge=0, alias="contributorCount")

    @property
    def name_is_divergent(self) -> bool:
        """Check if the name column shows the divergence marker."""
        return isinstance(self.track_name, Divergent)


class TrackEditRow(BaseModel):
    """One row of the per-file track editor, bound to a single track id."""

    model_config = ConfigDict(populate_by_name=True)

    track_id: str = Field(..., alias="trackId")
    copy_track: bool = Field(True, alias="copyTrack")
    set_default: bool = Field(False, alias="setDefault")
    set_forced: bool = Field(False, alias="setForced")
    track_name: str = Field("", alias="trackName")
    language: str = "und"


class SkippedWrite(BaseModel):
    """A write-back target that had no track at the row's position."""

    video_id: str
    position: int
    reason: str


class WriteBackReport(BaseModel):
    """Outcome of a bulk write-back: tracks updated and videos skipped."""

    updated: int = 0
    skipped: list[SkippedWrite] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped
