"""Mux queue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from mkvbatch.api.deps import get_queue
from mkvbatch.api.schemas import EnqueueResponse, QueueJobItem, SessionRequest, StopResponse
from mkvbatch.jobs.manager import MuxQueue
from mkvbatch.jobs.models import MuxJob
from mkvbatch.services.assembly import JobAssembler
from mkvbatch.store import EntityStore

router = APIRouter(prefix="/api/v1/queue", tags=["queue"])


def _item(job: MuxJob) -> QueueJobItem:
    return QueueJobItem(
        job_id=job.id,
        video_id=job.video_id,
        video_name=job.video_name,
        status=job.status.value,
        progress=job.progress,
        message=job.message,
        error_message=job.error_message,
        eta_seconds=job.eta_seconds,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


@router.get("", response_model=list[QueueJobItem])
async def list_jobs(queue: MuxQueue = Depends(get_queue)) -> list[QueueJobItem]:
    return [_item(j) for j in queue.list_jobs()]


@router.get("/{job_id}", response_model=QueueJobItem)
async def get_job(job_id: str, queue: MuxQueue = Depends(get_queue)) -> QueueJobItem:
    job = queue.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return _item(job)


@router.post("", response_model=EnqueueResponse, status_code=202)
async def enqueue(req: SessionRequest, queue: MuxQueue = Depends(get_queue)) -> EnqueueResponse:
    store = EntityStore.from_snapshot(req.session)
    added = queue.enqueue(JobAssembler(store).assemble(), store.revision)
    return EnqueueResponse(revision=store.revision, queued=len(added))


@router.post("/stop", response_model=StopResponse)
async def stop(queue: MuxQueue = Depends(get_queue)) -> StopResponse:
    return StopResponse(stopped=await queue.stop())
