"""Health check endpoint."""

import shutil

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from mkvbatch import __version__
from mkvbatch.api.deps import get_queue
from mkvbatch.config import settings
from mkvbatch.jobs.manager import MuxQueue

router = APIRouter()


class HealthResponse(BaseModel):
    """Service status plus the tools and queue it depends on."""

    status: str
    version: str
    ffprobe_available: bool
    active_jobs: int


@router.get("/health", response_model=HealthResponse)
async def health_check(queue: MuxQueue = Depends(get_queue)) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        ffprobe_available=shutil.which(settings.ffprobe_path) is not None,
        active_jobs=sum(1 for job in queue.list_jobs() if job.is_active),
    )
