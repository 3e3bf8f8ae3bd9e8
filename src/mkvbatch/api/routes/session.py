"""Session endpoints: assembly, pre-flight validation and aggregation."""

from __future__ import annotations

from fastapi import APIRouter

from mkvbatch.api.deps import to_http_error
from mkvbatch.api.schemas import (
    AggregateRequest,
    AggregateResponse,
    AssembleResponse,
    PreviewRequest,
    PreviewResponse,
    SessionRequest,
)
from mkvbatch.errors import MKVBatchError
from mkvbatch.services.aggregation import build_aggregate_rows
from mkvbatch.services.assembly import JobAssembler
from mkvbatch.services.preflight import fast_mux_available, validate_jobs
from mkvbatch.store import EntityStore

router = APIRouter(prefix="/api/v1/session", tags=["session"])


@router.post("/assemble", response_model=AssembleResponse)
async def assemble(req: SessionRequest) -> AssembleResponse:
    store = EntityStore.from_snapshot(req.session)
    jobs = JobAssembler(store).assemble()
    return AssembleResponse(revision=store.revision, jobs=jobs, matches=store.match_report())


@router.post("/preview", response_model=PreviewResponse)
async def preview(req: PreviewRequest) -> PreviewResponse:
    store = EntityStore.from_snapshot(req.session)
    jobs = JobAssembler(store).assemble()
    try:
        results = validate_jobs(jobs, req.settings, match_report=store.match_report())
    except MKVBatchError as exc:
        raise to_http_error(exc) from exc
    return PreviewResponse(
        results=results,
        fast_mux_available=fast_mux_available(store, req.settings),
    )


@router.post("/aggregate", response_model=AggregateResponse)
async def aggregate(req: AggregateRequest) -> AggregateResponse:
    store = EntityStore.from_snapshot(req.session)
    return AggregateResponse(kind=req.kind, rows=build_aggregate_rows(store.videos, req.kind))
