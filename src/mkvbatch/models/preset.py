"""Preset and per-slot track configuration models."""

from pydantic import BaseModel, ConfigDict, Field

from mkvbatch.models.external import ExternalKind


class Preset(BaseModel):
    """User preset seeding the audio and subtitle tabs."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = "Default"
    default_audio_language: str | None = Field(None, alias="defaultAudioLanguage")
    default_subtitle_language: str | None = Field(None, alias="defaultSubtitleLanguage")
    audio_source_folder: str | None = Field(None, alias="audioSourceFolder")
    subtitle_source_folder: str | None = Field(None, alias="subtitleSourceFolder")

    def language_for(self, kind: ExternalKind) -> str | None:
        if kind == ExternalKind.AUDIO:
            return self.default_audio_language
        if kind == ExternalKind.SUBTITLE:
            return self.default_subtitle_language
        return None

    def folder_for(self, kind: ExternalKind) -> str | None:
        if kind == ExternalKind.AUDIO:
            return self.audio_source_folder
        if kind == ExternalKind.SUBTITLE:
            return self.subtitle_source_folder
        return None


class TrackConfig(BaseModel):
    """Settings of one numbered audio or subtitle slot.

    ``delay`` is kept as the text the user typed; ``delay_seconds``
    parses it.
    """

    model_config = ConfigDict(populate_by_name=True)

    source_folder: str = Field("", alias="sourceFolder")
    extension: str = "all"
    language: str = "und"
    track_name: str = Field("", alias="trackName")
    delay: str = "0.000"
    is_default: bool = Field(False, alias="isDefault")
    is_forced: bool = Field(False, alias="isForced")
    mux_after: str = Field("video", alias="muxAfter")

    @property
    def delay_seconds(self) -> float:
        try:
            return float(self.delay)
        except ValueError:
            return 0.0

    @classmethod
    def defaults_for(cls, kind: ExternalKind) -> "TrackConfig":
        """Blank slot settings for a tab kind."""
        if kind == ExternalKind.SUBTITLE:
            return cls(language="eng", mux_after="audio")
        return cls(language="hin", mux_after="video")
