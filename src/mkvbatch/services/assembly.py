"""Job assembly: one fully resolved JobRequest per video."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from mkvbatch.models.external import ExternalFile, ExternalKind, Origin
from mkvbatch.models.job import JobRequest, ResolvedExternalTrack
from mkvbatch.models.media import VideoFile
from mkvbatch.models.track import Track, TrackKind
from mkvbatch.services.placement import order_by_placement

if TYPE_CHECKING:
    from mkvbatch.store import EntityStore

logger = logging.getLogger(__name__)


def _resolved(
    ext: ExternalFile,
    *,
    kind: ExternalKind,
    stream_id: str | None,
    language: str | None,
    track_name: str | None,
    delay: float,
    is_default: bool | None,
    is_forced: bool | None,
) -> ResolvedExternalTrack:
    return ResolvedExternalTrack(
        source_id=ext.id,
        path=ext.path,
        kind=kind,
        origin=ext.origin,
        stream_id=stream_id,
        language=language,
        track_name=track_name,
        delay=delay,
        is_default=is_default,
        is_forced=is_forced,
        mux_after=ext.mux_after,
    )


class _Stream(NamedTuple):
    id: str
    language: str | None
    name: str | None


def _selected_streams(ext: ExternalFile) -> list[_Stream] | None:
    """Embedded streams to expand, or None to mux the file whole."""
    track_kind = ext.kind.track_kind
    if ext.included_track_ids is not None:
        wanted = set(ext.included_track_ids)
        return [_stream(t) for t in ext.tracks if t.id in wanted]
    embedded = [_stream(t) for t in ext.tracks if track_kind is not None and t.kind == track_kind]
    if embedded:
        return embedded
    if ext.track_id is not None:
        return [_Stream(ext.track_id, None, None)]
    return None


def _stream(track: Track) -> _Stream:
    return _Stream(track.id, track.language, track.name)


def expand_external(ext: ExternalFile) -> list[ResolvedExternalTrack]:
    """Expand one external file into the streams it contributes.

    An explicit empty selection contributes nothing. Per-stream overrides
    win over file-level values, which win over the embedded stream's own
    values. The file-level name and delay apply to every stream; the
    file-level language and default flag only to the first one.

    Args:
        ext: External file (any kind)

    Returns:
        Resolved entries, in embedded stream order
    """
    streams = _selected_streams(ext)
    if streams is None:
        return [
            _resolved(
                ext,
                kind=ext.kind,
                stream_id=None,
                language=ext.language,
                track_name=ext.track_name,
                delay=ext.delay,
                is_default=ext.is_default,
                is_forced=ext.is_forced,
            )
        ]

    resolved: list[ResolvedExternalTrack] = []
    for index, stream in enumerate(streams):
        override = ext.track_overrides.get(stream.id)
        first = index == 0

        language = override.language if override and override.language else None
        if language is None and first and ext.language:
            language = ext.language
        language = language or stream.language or "und"

        name = override.track_name if override and override.track_name else None
        name = name or ext.track_name or stream.name

        delay = override.delay if override and override.delay is not None else ext.delay

        if ext.is_default:
            is_default: bool | None = first
        else:
            is_default = ext.is_default

        resolved.append(
            _resolved(
                ext,
                kind=ext.kind,
                stream_id=stream.id,
                language=language,
                track_name=name,
                delay=delay,
                is_default=is_default,
                is_forced=ext.is_forced,
            )
        )
    return resolved


def expand_embedded_subtitles(ext: ExternalFile) -> list[ResolvedExternalTrack]:
    """Subtitle streams carried inside an audio container, when requested."""
    if ext.kind != ExternalKind.AUDIO or not ext.include_subtitles:
        return []
    streams = [t for t in ext.tracks if t.kind == TrackKind.SUBTITLE]
    if ext.included_subtitle_track_ids is not None:
        wanted = set(ext.included_subtitle_track_ids)
        streams = [t for t in streams if t.id in wanted]

    resolved = []
    for stream in streams:
        override = ext.track_overrides.get(stream.id)
        resolved.append(
            _resolved(
                ext,
                kind=ExternalKind.SUBTITLE,
                stream_id=stream.id,
                language=(override.language if override and override.language else None)
                or stream.language,
                track_name=(override.track_name if override and override.track_name else None)
                or stream.name,
                delay=override.delay if override and override.delay is not None else ext.delay,
                is_default=None,
                is_forced=None,
            )
        )
    return resolved


def _with_audio_default(ext: ExternalFile) -> ExternalFile:
    """Bulk audio defaults on, per-file audio defaults off, when unset."""
    if ext.is_default is not None:
        return ext
    return ext.model_copy(update={"is_default": ext.origin == Origin.BULK})


class JobAssembler:
    """Builds JobRequests from the current contents of an EntityStore.

    Assembly is a read-only projection: the store is never mutated and
    repeated calls on an unchanged store give equal results.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def assemble(self) -> list[JobRequest]:
        """Build one JobRequest per video, in store order.

        Returns:
            Job requests; empty when the store holds no videos
        """
        videos = self._store.videos
        if not videos:
            logger.info("No videos loaded, nothing to assemble")
            return []
        jobs = [self.assemble_one(video) for video in videos]
        logger.info("Assembled %d job(s) at revision %d", len(jobs), self._store.revision)
        return jobs

    def assemble_one(self, video: VideoFile) -> JobRequest:
        """Build the JobRequest of a single video."""
        audio_files = [
            _with_audio_default(ext) for ext in self._matched(video.id, ExternalKind.AUDIO)
        ]
        subtitle_files = self._matched(video.id, ExternalKind.SUBTITLE)

        audios: list[ResolvedExternalTrack] = []
        carried_subtitles: list[ResolvedExternalTrack] = []
        for ext in order_by_placement(audio_files):
            audios.extend(expand_external(ext))
            carried_subtitles.extend(expand_embedded_subtitles(ext))

        subtitles: list[ResolvedExternalTrack] = []
        for ext in order_by_placement(subtitle_files):
            subtitles.extend(expand_external(ext))
        subtitles.extend(carried_subtitles)

        chapters = [
            entry
            for ext in self._matched(video.id, ExternalKind.CHAPTER)
            for entry in expand_external(ext)
        ]
        attachments = [
            entry
            for ext in self._matched(video.id, ExternalKind.ATTACHMENT)
            for entry in expand_external(ext)
        ]

        return JobRequest(
            id=JobRequest.id_for(video),
            video=video.model_copy(deep=True),
            audios=tuple(audios),
            subtitles=tuple(subtitles),
            chapters=tuple(chapters),
            attachments=tuple(attachments),
        )

    def _matched(self, video_id: str, kind: ExternalKind) -> list[ExternalFile]:
        """Bulk matches followed by per-file entries, in list order."""
        bulk = [f for f in self._store.externals(kind) if f.matched_video_id == video_id]
        return [*bulk, *self._store.per_file(video_id, kind)]
