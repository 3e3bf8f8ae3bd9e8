"""Streamed metadata inspection batches."""

from pydantic import BaseModel, ConfigDict, Field

from mkvbatch.models.external import ExternalFile
from mkvbatch.models.media import VideoFile


class InspectChunk(BaseModel):
    """One partial batch of inspection results for a scan.

    The final chunk of a scan has ``done`` set (or carries ``error``).
    Items may arrive in any order relative to the requested paths.
    """

    model_config = ConfigDict(populate_by_name=True)

    scan_id: str = Field(..., alias="scanId")
    processed: int = Field(0, ge=0)
    total: int = Field(0, ge=0)
    items: list[VideoFile | ExternalFile] = Field(default_factory=list)
    done: bool = False
    error: str | None = None
