"""Collaborator interfaces (Protocols) for mkvbatch.

The engine only talks to the metadata inspector and the muxing executor
through these contracts, so either side can be swapped for a fake in
tests.
"""

from collections.abc import AsyncIterator, Callable
from typing import Protocol

from mkvbatch.models.external import ExternalFile, ExternalKind
from mkvbatch.models.job import JobRequest
from mkvbatch.models.media import VideoFile
from mkvbatch.models.mux import MuxProgressEvent, MuxSettings, PreviewResult
from mkvbatch.models.scan import InspectChunk

ProgressCallback = Callable[[MuxProgressEvent], None]


class IMetadataInspector(Protocol):
    """Interface for probing media files into store entities."""

    async def inspect(
        self,
        paths: list[str],
        kind: ExternalKind | None,
        include_tracks: bool = True,
    ) -> list[VideoFile | ExternalFile]:
        """Inspect a batch of paths in one call.

        Args:
            paths: Filesystem paths to inspect
            kind: External kind to build, or None for videos
            include_tracks: Whether to report embedded streams

        Returns:
            One entity per path, in path order

        Raises:
            InvalidPathListError: If the path list is empty or malformed
        """
        ...

    def inspect_stream(
        self,
        scan_id: str,
        paths: list[str],
        kind: ExternalKind | None,
        include_tracks: bool = True,
        batch_size: int = 8,
    ) -> AsyncIterator[InspectChunk]:
        """Inspect paths incrementally.

        Args:
            scan_id: Caller-supplied id echoed on every chunk
            paths: Filesystem paths to inspect
            kind: External kind to build, or None for videos
            include_tracks: Whether to report embedded streams
            batch_size: Maximum items per chunk

        Yields:
            Partial chunks, then a final chunk with ``done`` or ``error`` set
        """
        ...


class IMuxExecutor(Protocol):
    """Interface for the out-of-process muxing executor."""

    async def start(self, settings: MuxSettings, jobs: list[JobRequest]) -> None:
        """Start muxing the given jobs.

        Raises:
            ExecutionError: If the executor could not be started
        """
        ...

    async def preview(
        self, settings: MuxSettings, jobs: list[JobRequest]
    ) -> list[PreviewResult]:
        """Validate jobs without executing them."""
        ...

    async def stop(self) -> None:
        """Stop every queued and running job."""
        ...

    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback receiving per-job progress events."""
        ...
