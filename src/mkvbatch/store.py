"""In-memory entity store for videos and external files.

The store is the only shared mutable state. Every mutation goes through
one of the update operations below and bumps ``revision``, so callers can
tell that JobRequests assembled earlier are stale.
"""

import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from mkvbatch.errors import UnknownVideoError
from mkvbatch.models.external import ExternalFile, ExternalKind, Origin
from mkvbatch.models.media import VideoFile
from mkvbatch.services.matching import MatchReport, resolve_matches

logger = logging.getLogger(__name__)


class StoreSnapshot(BaseModel):
    """Serializable contents of a store (the session file format)."""

    model_config = ConfigDict(populate_by_name=True)

    videos: list[VideoFile] = Field(default_factory=list)
    externals: dict[ExternalKind, list[ExternalFile]] = Field(default_factory=dict)
    per_video: dict[str, dict[ExternalKind, list[ExternalFile]]] = Field(
        default_factory=dict, alias="perVideo"
    )


class EntityStore:
    """Typed containers for videos, bulk external lists and per-video files.

    Bulk lists are re-resolved against the video list whenever either side
    changes structurally, so ``matched_video_id`` never dangles.
    """

    def __init__(self) -> None:
        self._videos: list[VideoFile] = []
        self._externals: dict[ExternalKind, list[ExternalFile]] = {k: [] for k in ExternalKind}
        self._per_video: dict[str, dict[ExternalKind, list[ExternalFile]]] = {}
        self._reports: dict[ExternalKind, MatchReport] = {k: MatchReport() for k in ExternalKind}
        self._revision = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def revision(self) -> int:
        """Monotonic counter bumped by every mutation."""
        return self._revision

    @property
    def videos(self) -> list[VideoFile]:
        return list(self._videos)

    def get_video(self, video_id: str) -> VideoFile | None:
        """Get a video by ID."""
        return next((v for v in self._videos if v.id == video_id), None)

    def externals(self, kind: ExternalKind) -> list[ExternalFile]:
        """Bulk external files of one kind, in list order."""
        return list(self._externals[kind])

    def per_file(self, video_id: str, kind: ExternalKind) -> list[ExternalFile]:
        """Files explicitly attached to one video."""
        return list(self._per_video.get(video_id, {}).get(kind, []))

    def match_report(self, kind: ExternalKind | None = None) -> MatchReport:
        """Outcome of the latest resolver pass (all kinds when ``kind`` is None)."""
        if kind is not None:
            return self._reports[kind]
        report = MatchReport()
        for k in ExternalKind:
            report = report.merged(self._reports[k])
        return report

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    def replace_videos(self, videos: Iterable[VideoFile]) -> None:
        """Replace the whole video list."""
        self._videos = list(videos)
        self._on_videos_changed()

    def add_videos(self, videos: Iterable[VideoFile]) -> None:
        """Append videos, ignoring paths already present."""
        known = {v.path for v in self._videos}
        added = [v for v in videos if v.path not in known]
        self._videos.extend(added)
        logger.debug("Added %d video(s)", len(added))
        self._on_videos_changed()

    def update_video(self, video: VideoFile) -> None:
        """Replace one video entry in place (matched by id).

        Raises:
            UnknownVideoError: If no video has that id
        """
        for index, existing in enumerate(self._videos):
            if existing.id == video.id:
                self._videos[index] = video
                self._bump()
                return
        raise UnknownVideoError(video.id)

    def update_videos(self, videos: Iterable[VideoFile]) -> None:
        """Replace several entries at once; unknown ids are ignored."""
        by_id = {v.id: v for v in videos}
        self._videos = [by_id.get(v.id, v) for v in self._videos]
        self._bump()

    def remove_video(self, video_id: str) -> None:
        """Remove a video and every per-file entry attached to it."""
        self._videos = [v for v in self._videos if v.id != video_id]
        self._on_videos_changed()

    # ------------------------------------------------------------------
    # Bulk external files
    # ------------------------------------------------------------------

    def replace_externals(self, kind: ExternalKind, files: Iterable[ExternalFile]) -> None:
        """Replace the bulk list of one kind."""
        self._externals[kind] = [self._as_bulk(f) for f in files]
        self._resolve(kind)
        self._bump()

    def add_externals(self, kind: ExternalKind, files: Iterable[ExternalFile]) -> None:
        """Append to the bulk list of one kind."""
        self._externals[kind].extend(self._as_bulk(f) for f in files)
        self._resolve(kind)
        self._bump()

    def update_external(self, file: ExternalFile) -> None:
        """Replace one bulk entry (matched by id), then re-resolve its list.

        A changed ``matched_video_id`` counts as a user assignment and is
        kept by later resolver passes while its video exists.
        """
        files = self._externals[file.kind]
        for index, existing in enumerate(files):
            if existing.id == file.id:
                if file.matched_video_id != existing.matched_video_id:
                    file = file.model_copy(update={"auto_matched": False})
                files[index] = file
                self._resolve(file.kind)
                self._bump()
                return
        logger.warning("update_external: unknown external file %s", file.id)

    def remove_external(self, kind: ExternalKind, file_id: str) -> None:
        self._externals[kind] = [f for f in self._externals[kind] if f.id != file_id]
        self._resolve(kind)
        self._bump()

    # ------------------------------------------------------------------
    # Per-file external files
    # ------------------------------------------------------------------

    def attach_per_file(
        self, video_id: str, kind: ExternalKind, files: Iterable[ExternalFile]
    ) -> None:
        """Attach files to one video, appending to its per-file list.

        Raises:
            UnknownVideoError: If the video is not in the store
        """
        bucket = self._per_file_bucket(video_id, kind)
        bucket.extend(self._as_per_file(video_id, f) for f in files)
        self._bump()

    def replace_per_file(
        self, video_id: str, kind: ExternalKind, files: Iterable[ExternalFile]
    ) -> None:
        """Replace one video's per-file list of one kind.

        Raises:
            UnknownVideoError: If the video is not in the store
        """
        bucket = self._per_file_bucket(video_id, kind)
        bucket[:] = [self._as_per_file(video_id, f) for f in files]
        self._bump()

    # ------------------------------------------------------------------
    # Session import/export
    # ------------------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            videos=self.videos,
            externals={k: list(v) for k, v in self._externals.items() if v},
            per_video={
                vid: {k: list(files) for k, files in kinds.items() if files}
                for vid, kinds in self._per_video.items()
            },
        )

    @classmethod
    def from_snapshot(cls, snapshot: StoreSnapshot) -> "EntityStore":
        """Build a store from session contents, re-resolving every list."""
        store = cls()
        store._videos = list(snapshot.videos)
        for kind, files in snapshot.externals.items():
            store._externals[kind] = [store._as_bulk(f) for f in files]
        known = {v.id for v in store._videos}
        for video_id, kinds in snapshot.per_video.items():
            if video_id not in known:
                logger.warning("Dropping per-file entries of unknown video %s", video_id)
                continue
            for kind, files in kinds.items():
                store._per_file_bucket(video_id, kind).extend(
                    store._as_per_file(video_id, f) for f in files
                )
        store._on_videos_changed()
        return store

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _bump(self) -> None:
        self._revision += 1

    def _on_videos_changed(self) -> None:
        known = {v.id for v in self._videos}
        for video_id in list(self._per_video):
            if video_id not in known:
                del self._per_video[video_id]
        for kind in ExternalKind:
            self._resolve(kind)
        self._bump()

    def _resolve(self, kind: ExternalKind) -> None:
        self._externals[kind], self._reports[kind] = resolve_matches(
            self._externals[kind], self._videos
        )

    def _per_file_bucket(self, video_id: str, kind: ExternalKind) -> list[ExternalFile]:
        if self.get_video(video_id) is None:
            raise UnknownVideoError(video_id)
        return self._per_video.setdefault(video_id, {}).setdefault(kind, [])

    @staticmethod
    def _as_bulk(file: ExternalFile) -> ExternalFile:
        if file.origin == Origin.BULK:
            return file
        return file.model_copy(update={"origin": Origin.BULK})

    @staticmethod
    def _as_per_file(video_id: str, file: ExternalFile) -> ExternalFile:
        return file.model_copy(
            update={
                "origin": Origin.PER_FILE,
                "matched_video_id": video_id,
                "auto_matched": False,
            }
        )
