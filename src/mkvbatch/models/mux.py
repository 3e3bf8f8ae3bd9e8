"""Settings and reporting models shared with the muxing executor."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mkvbatch.models.job import ResolvedExternalTrack


class MuxStatus(str, Enum):
    """Execution status of a mux job, reported by the executor."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class MuxSettings(BaseModel):
    """Settings object handed to the executor alongside the job list."""

    model_config = ConfigDict(populate_by_name=True)

    destination_dir: str = Field("", alias="destinationDir")
    overwrite_source: bool = Field(False, alias="overwriteSource")
    add_crc: bool = Field(False, alias="addCrc")
    remove_old_crc: bool = Field(False, alias="removeOldCrc")
    keep_log_file: bool = Field(False, alias="keepLogFile")
    abort_on_errors: bool = Field(False, alias="abortOnErrors")
    max_parallel_jobs: int = Field(2, ge=1, alias="maxParallelJobs")
    only_keep_audios_enabled: bool = Field(False, alias="onlyKeepAudiosEnabled")
    only_keep_subtitles_enabled: bool = Field(False, alias="onlyKeepSubtitlesEnabled")
    only_keep_audio_languages: list[str] = Field(
        default_factory=list, alias="onlyKeepAudioLanguages"
    )
    only_keep_subtitle_languages: list[str] = Field(
        default_factory=list, alias="onlyKeepSubtitleLanguages"
    )
    discard_old_chapters: bool = Field(False, alias="discardOldChapters")
    discard_old_attachments: bool = Field(False, alias="discardOldAttachments")
    allow_duplicate_attachments: bool = Field(False, alias="allowDuplicateAttachments")
    attachments_expert_mode: bool = Field(False, alias="attachmentsExpertMode")
    remove_global_tags: bool = Field(False, alias="removeGlobalTags")
    make_audio_default_language: str | None = Field(None, alias="makeAudioDefaultLanguage")
    make_subtitle_default_language: str | None = Field(
        None, alias="makeSubtitleDefaultLanguage"
    )
    use_mkvpropedit: bool = Field(False, alias="useMkvpropedit")

    @property
    def has_language_filters(self) -> bool:
        """Check if any language keep/default rule is active."""
        return (
            self.only_keep_audios_enabled
            or self.only_keep_subtitles_enabled
            or bool(self.make_audio_default_language)
            or bool(self.make_subtitle_default_language)
        )


class MuxProgressEvent(BaseModel):
    """Out-of-band progress report for one job."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str
    status: MuxStatus
    progress: int = Field(0, ge=0, le=100)
    message: str | None = None
    size_after: int | None = None
    error_message: str | None = None


class PreviewPlan(BaseModel):
    """What a job would mux, as reported by a dry-run validation pass."""

    model_config = ConfigDict(populate_by_name=True)

    video: str
    output: str
    audios: list[ResolvedExternalTrack] = Field(default_factory=list)
    subtitles: list[ResolvedExternalTrack] = Field(default_factory=list)
    chapters: list[ResolvedExternalTrack] = Field(default_factory=list)
    attachments: list[ResolvedExternalTrack] = Field(default_factory=list)


class PreviewResult(BaseModel):
    """Result of validating one job without executing it."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId")
    command: str = ""
    warnings: list[str] = Field(default_factory=list)
    plan: PreviewPlan | None = None

    @model_validator(mode="after")
    def strip_blank_warnings(self) -> "PreviewResult":
        """Drop empty warning strings."""
        self.warnings = [w for w in self.warnings if w.strip()]
        return self
