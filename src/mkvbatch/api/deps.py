"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException

from mkvbatch.errors import MKVBatchError, UnknownVideoError
from mkvbatch.jobs.manager import MuxQueue
from mkvbatch.services.inspection import FFprobeInspector
from mkvbatch.services.interfaces import IMetadataInspector

_queue: MuxQueue | None = None
_inspector: IMetadataInspector | None = None


def init_queue() -> MuxQueue:
    """Initialize the global MuxQueue (called at app startup)."""
    global _queue
    _queue = MuxQueue()
    return _queue


def get_queue() -> MuxQueue:
    """Dependency that provides the MuxQueue instance."""
    if _queue is None:
        raise RuntimeError("MuxQueue not initialized; call init_queue() first")
    return _queue


def init_inspector(
    inspector: IMetadataInspector | None = None,
    ffprobe_path: str = "ffprobe",
) -> IMetadataInspector:
    """Initialize the global metadata inspector (ffprobe unless one is given)."""
    global _inspector
    _inspector = inspector or FFprobeInspector(ffprobe_path)
    return _inspector


def get_inspector() -> IMetadataInspector:
    """Dependency that provides the metadata inspector."""
    if _inspector is None:
        raise RuntimeError("Inspector not initialized; call init_inspector() first")
    return _inspector


def to_http_error(exc: MKVBatchError) -> HTTPException:
    """Map a domain error to an HTTP error (404 for unknown videos, else 422)."""
    status = 404 if isinstance(exc, UnknownVideoError) else 422
    return HTTPException(status_code=status, detail=str(exc))
