"""Job request models handed to the muxing executor."""

from pydantic import BaseModel, ConfigDict, Field

from mkvbatch.models.external import ExternalKind, Origin
from mkvbatch.models.media import VideoFile


class ResolvedExternalTrack(BaseModel):
    """One external stream, fully resolved for a single job.

    ``stream_id`` is ``None`` when the whole file is muxed as-is (plain
    subtitle files, chapters, attachments).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_id: str = Field(..., alias="sourceId", description="ExternalFile id")
    path: str
    kind: ExternalKind = Field(..., alias="type")
    origin: Origin = Field(Origin.BULK, alias="source")
    stream_id: str | None = Field(None, alias="streamId")
    language: str | None = None
    track_name: str | None = Field(None, alias="trackName")
    delay: float = 0.0
    is_default: bool | None = Field(None, alias="isDefault")
    is_forced: bool | None = Field(None, alias="isForced")
    mux_after: str = Field("video", alias="muxAfter")

    @property
    def delay_ms(self) -> int:
        """Delay in whole milliseconds (truncated toward zero)."""
        return int(self.delay * 1000.0)


class JobRequest(BaseModel):
    """Per-video specification consumed once by the muxing executor.

    Built fresh on every assembly pass and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    video: VideoFile
    audios: tuple[ResolvedExternalTrack, ...] = ()
    subtitles: tuple[ResolvedExternalTrack, ...] = ()
    chapters: tuple[ResolvedExternalTrack, ...] = ()
    attachments: tuple[ResolvedExternalTrack, ...] = ()

    @classmethod
    def id_for(cls, video: VideoFile) -> str:
        """Job ids are derived from the video id."""
        return f"job-{video.id}"

    @property
    def external_count(self) -> int:
        """Number of external streams and files in this job."""
        return (
            len(self.audios)
            + len(self.subtitles)
            + len(self.chapters)
            + len(self.attachments)
        )

    def all_external(self) -> list[ResolvedExternalTrack]:
        """Every external entry, grouped by kind."""
        return [*self.audios, *self.subtitles, *self.chapters, *self.attachments]
