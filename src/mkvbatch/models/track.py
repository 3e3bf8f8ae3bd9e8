"""Track-related data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrackKind(str, Enum):
    """Kind of stream inside a video container."""

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    CHAPTER = "chapter"


class Disposition(str, Enum):
    """What happens to an internal track when the job is muxed."""

    KEEP = "keep"
    MODIFY = "modify"
    REMOVE = "remove"


class TrackSnapshot(BaseModel):
    """Values a track had before its first edit.

    Captured once and never replaced; every later edit is diffed
    against it rather than against the previous edit.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str | None = Field(None, description="Original track name")
    language: str = Field("und", description="Original language code")
    is_default: bool | None = Field(None, alias="isDefault")
    is_forced: bool | None = Field(None, alias="isForced")


class Track(BaseModel):
    """A single stream inside a VideoFile (or an embedded external payload).

    ``is_default`` and ``is_forced`` are tri-state: ``None`` means the
    container never specified the flag, which is not the same as an
    explicit ``False``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Stream id, stable within its file")
    kind: TrackKind = Field(..., alias="type", description="Stream kind")
    codec: str | None = Field(None, description="Codec name")
    language: str = Field("und", description="ISO 639 language code")
    name: str | None = Field(None, description="Track title")
    bitrate: int | None = Field(None, description="Bitrate in bits per second")
    is_default: bool | None = Field(None, alias="isDefault")
    is_forced: bool | None = Field(None, alias="isForced")
    disposition: Disposition = Field(Disposition.KEEP, alias="action")
    original: TrackSnapshot | None = Field(
        None, description="Pre-edit values, captured on first modification"
    )

    @field_validator("language", mode="before")
    @classmethod
    def default_language(cls, value: str | None) -> str:
        """Treat a missing language tag as undetermined."""
        return value or "und"

    @property
    def display_name(self) -> str:
        """Name shown to users: the title, else the codec."""
        return self.name or self.codec or ""

    @property
    def is_removed(self) -> bool:
        """Check if this track is dropped from the output."""
        return self.disposition == Disposition.REMOVE

    def snapshot(self) -> TrackSnapshot:
        """Return the captured original, or the current values if never edited."""
        if self.original is not None:
            return self.original
        return TrackSnapshot(
            name=self.name,
            language=self.language,
            is_default=self.is_default,
            is_forced=self.is_forced,
        )

    def capture_original(self) -> "Track":
        """Return a copy carrying its snapshot; an existing one is kept."""
        if self.original is not None:
            return self
        return self.model_copy(update={"original": self.snapshot()})

    def differs_from_original(self) -> bool:
        """Check whether name, language or flags differ from the snapshot."""
        original = self.snapshot()
        return (
            (self.name or "") != (original.name or "")
            or self.language != original.language
            or self.is_default != original.is_default
            or self.is_forced != original.is_forced
        )
