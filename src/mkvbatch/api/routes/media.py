"""Media inspection endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from mkvbatch.api.deps import get_inspector, to_http_error
from mkvbatch.api.schemas import InspectRequest, InspectResponse
from mkvbatch.errors import MKVBatchError
from mkvbatch.services.interfaces import IMetadataInspector

router = APIRouter(prefix="/api/v1/media", tags=["media"])


@router.post("/inspect", response_model=InspectResponse)
async def inspect(
    req: InspectRequest,
    inspector: IMetadataInspector = Depends(get_inspector),
) -> InspectResponse:
    try:
        items = await inspector.inspect(req.paths, req.kind, req.include_tracks)
    except MKVBatchError as exc:
        raise to_http_error(exc) from exc
    return InspectResponse(items=items)
