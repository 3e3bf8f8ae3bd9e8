"""Metadata inspection using ffprobe, plus streamed scan bookkeeping."""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from mkvbatch.errors import InspectionError, InvalidPathListError
from mkvbatch.models.external import ExternalFile, ExternalKind
from mkvbatch.models.media import VideoFile
from mkvbatch.models.scan import InspectChunk
from mkvbatch.models.track import Track, TrackKind
from mkvbatch.services.interfaces import IMetadataInspector

if TYPE_CHECKING:
    from mkvbatch.store import EntityStore

logger = logging.getLogger(__name__)

_CODEC_TYPES = {
    "video": TrackKind.VIDEO,
    "audio": TrackKind.AUDIO,
    "subtitle": TrackKind.SUBTITLE,
}


def _validate_paths(paths: list[str]) -> None:
    if not paths:
        raise InvalidPathListError("No paths given")
    bad = [p for p in paths if not isinstance(p, str) or not p.strip()]
    if bad:
        raise InvalidPathListError(f"Malformed paths: {bad!r}")


def _format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS."""
    total = int(seconds)
    return f"{total // 3600:02d}:{total % 3600 // 60:02d}:{total % 60:02d}"


def _parse_rate(rate: str | None) -> float | None:
    """Parse an ffprobe frame rate such as "30000/1001"."""
    if not rate or "/" not in rate:
        return None
    num, den = rate.split("/", 1)
    try:
        return round(float(num) / float(den), 3) if float(den) != 0 else None
    except ValueError:
        return None


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flag(disposition: dict[str, Any] | None, key: str) -> bool | None:
    if not disposition or key not in disposition:
        return None
    return bool(disposition[key])


def parse_streams(data: dict[str, Any]) -> list[Track]:
    """Map ffprobe ``streams`` entries to tracks, in stream order.

    Streams of other types (attachments, data) are ignored.
    """
    tracks: list[Track] = []
    for stream in data.get("streams", []):
        kind = _CODEC_TYPES.get(stream.get("codec_type", ""))
        if kind is None:
            continue
        tags = {k.lower(): v for k, v in (stream.get("tags") or {}).items()}
        bitrate = _int_or_none(stream.get("bit_rate")) or _int_or_none(tags.get("bps"))
        disposition = stream.get("disposition")
        tracks.append(
            Track(
                id=str(stream.get("index", len(tracks))),
                kind=kind,
                codec=stream.get("codec_name"),
                language=tags.get("language"),
                name=tags.get("title"),
                bitrate=bitrate,
                is_default=_flag(disposition, "default"),
                is_forced=_flag(disposition, "forced"),
            )
        )
    return tracks


def build_video(path: str, data: dict[str, Any]) -> VideoFile:
    """Build a VideoFile from ffprobe JSON output."""
    fmt = data.get("format", {})
    tracks = parse_streams(data)
    fps = None
    for stream in data.get("streams", []):
        if stream.get("codec_type") == "video":
            fps = _parse_rate(stream.get("avg_frame_rate")) or _parse_rate(
                stream.get("r_frame_rate")
            )
            break
    duration = fmt.get("duration")
    return VideoFile(
        path=path,
        name=Path(path).name,
        size=_int_or_none(fmt.get("size")) or 0,
        duration=_format_duration(float(duration)) if duration else None,
        fps=fps,
        tracks=tracks,
    )


def build_external(
    path: str,
    kind: ExternalKind,
    data: dict[str, Any],
    include_tracks: bool = True,
) -> ExternalFile:
    """Build an ExternalFile from ffprobe JSON output.

    The first stream of the file's own kind supplies the file-level
    language and stream id.
    """
    fmt = data.get("format", {})
    tracks = parse_streams(data)
    primary = next((t for t in tracks if t.kind == kind.track_kind), None)
    duration = fmt.get("duration")
    return ExternalFile(
        path=path,
        name=Path(path).name,
        kind=kind,
        size=_int_or_none(fmt.get("size")),
        bitrate=_int_or_none(fmt.get("bit_rate")),
        duration=_format_duration(float(duration)) if duration else None,
        language=primary.language if primary and primary.language != "und" else None,
        track_id=primary.id if primary else None,
        tracks=tracks if include_tracks else [],
    )


async def _settle(tasks: list[asyncio.Future]) -> None:
    """Cancel unfinished probes and collect every outcome, failures included."""
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class FFprobeInspector:
    """ffprobe-based metadata inspector."""

    def __init__(self, ffprobe_path: str = "ffprobe") -> None:
        self._ffprobe = ffprobe_path

    async def probe(self, path: str) -> dict[str, Any]:
        """Run ffprobe on one file.

        Args:
            path: Path to the media file

        Returns:
            Parsed ffprobe JSON

        Raises:
            InspectionError: If ffprobe is missing, fails or prints bad JSON
        """
        cmd = [
            self._ffprobe,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            path,
        ]
        try:
            result = await asyncio.to_thread(
                subprocess.run, cmd, capture_output=True, text=True
            )
        except FileNotFoundError as exc:
            raise InspectionError(f"ffprobe not found: {self._ffprobe}") from exc

        if result.returncode != 0:
            raise InspectionError(f"ffprobe failed for {path}: {result.stderr.strip()}")

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise InspectionError(f"ffprobe returned invalid JSON for {path}") from exc

    async def inspect_one(
        self, path: str, kind: ExternalKind | None, include_tracks: bool = True
    ) -> VideoFile | ExternalFile:
        data = await self.probe(path)
        if kind is None:
            return build_video(path, data)
        return build_external(path, kind, data, include_tracks)

    async def inspect(
        self,
        paths: list[str],
        kind: ExternalKind | None,
        include_tracks: bool = True,
    ) -> list[VideoFile | ExternalFile]:
        """Inspect every path concurrently; results follow path order."""
        _validate_paths(paths)
        tasks = [asyncio.ensure_future(self.inspect_one(p, kind, include_tracks)) for p in paths]
        try:
            return list(await asyncio.gather(*tasks))
        finally:
            await _settle(tasks)

    async def inspect_stream(
        self,
        scan_id: str,
        paths: list[str],
        kind: ExternalKind | None,
        include_tracks: bool = True,
        batch_size: int = 8,
    ) -> AsyncIterator[InspectChunk]:
        """Inspect paths in batches, yielding items as each probe finishes.

        Items inside a batch are yielded in completion order, not path
        order. A probe failure ends the stream with an error chunk.
        """
        _validate_paths(paths)
        total = len(paths)
        processed = 0
        size = max(1, batch_size)
        for start in range(0, total, size):
            batch = paths[start : start + size]
            items: list[VideoFile | ExternalFile] = []
            tasks = [
                asyncio.ensure_future(self.inspect_one(p, kind, include_tracks)) for p in batch
            ]
            failure: InspectionError | None = None
            try:
                for future in asyncio.as_completed(tasks):
                    items.append(await future)
            except InspectionError as exc:
                logger.exception("Scan %s failed", scan_id)
                failure = exc
            finally:
                await _settle(tasks)

            if failure is not None:
                yield InspectChunk(
                    scan_id=scan_id,
                    processed=processed,
                    total=total,
                    items=items,
                    error=str(failure),
                )
                return
            processed += len(items)
            yield InspectChunk(scan_id=scan_id, processed=processed, total=total, items=items)

        yield InspectChunk(scan_id=scan_id, processed=processed, total=total, done=True)


class ScanSession:
    """Collects streamed inspection chunks for one scan.

    Chunks carrying another scan id are ignored. Results are re-ordered
    to the requested path order and only written to the store once the
    scan completed without error.
    """

    def __init__(
        self,
        paths: list[str],
        kind: ExternalKind | None = None,
        scan_id: str | None = None,
    ) -> None:
        _validate_paths(paths)
        self.scan_id = scan_id or str(uuid4())
        self.paths = list(paths)
        self.kind = kind
        self.done = False
        self.error: str | None = None
        self.processed = 0
        self._items: dict[str, VideoFile | ExternalFile] = {}

    @property
    def progress(self) -> int:
        """Percent of paths inspected so far."""
        return int(100 * len(self._items) / len(self.paths))

    def accept(self, chunk: InspectChunk) -> bool:
        """Record one chunk.

        Returns:
            False if the chunk belongs to another scan or arrived after the end
        """
        if chunk.scan_id != self.scan_id:
            logger.debug("Ignoring chunk of scan %s (expecting %s)", chunk.scan_id, self.scan_id)
            return False
        if self.done or self.error:
            return False
        for item in chunk.items:
            self._items[item.path] = item
        self.processed = max(self.processed, chunk.processed)
        if chunk.error:
            self.error = chunk.error
        elif chunk.done:
            self.done = True
        return True

    def results(self) -> list[VideoFile | ExternalFile]:
        """Inspected items in requested path order (missing paths omitted)."""
        return [self._items[p] for p in self.paths if p in self._items]

    async def run(
        self,
        inspector: IMetadataInspector,
        include_tracks: bool = True,
        batch_size: int = 8,
    ) -> list[VideoFile | ExternalFile]:
        """Consume the inspector's stream for this scan.

        Raises:
            InspectionError: If the stream ended with an error chunk
        """
        async for chunk in inspector.inspect_stream(
            self.scan_id, self.paths, self.kind, include_tracks, batch_size
        ):
            self.accept(chunk)
            if self.done or self.error:
                break
        if self.error:
            raise InspectionError(self.error)
        return self.results()

    def commit(self, store: EntityStore) -> int:
        """Write the completed results into the store.

        Returns:
            Number of entities handed to the store

        Raises:
            InspectionError: If the scan has not completed successfully
        """
        if self.error:
            raise InspectionError(f"Scan {self.scan_id} failed: {self.error}")
        if not self.done:
            raise InspectionError(f"Scan {self.scan_id} is not complete")

        items = self.results()
        if self.kind is None:
            store.add_videos([i for i in items if isinstance(i, VideoFile)])
        else:
            store.add_externals(self.kind, [i for i in items if isinstance(i, ExternalFile)])
        logger.info("Scan %s committed %d item(s)", self.scan_id, len(items))
        return len(items)
