"""Services module for mkvbatch."""

from mkvbatch.services.assembly import JobAssembler, expand_external
from mkvbatch.services.inspection import FFprobeInspector, ScanSession
from mkvbatch.services.interfaces import IMetadataInspector, IMuxExecutor
from mkvbatch.services.matching import MatchMethod, MatchReport, resolve_matches
from mkvbatch.services.placement import order_by_placement, placement_rank
from mkvbatch.services.preflight import fast_mux_available, validate_jobs

__all__ = [
    "IMetadataInspector",
    "IMuxExecutor",
    "FFprobeInspector",
    "ScanSession",
    "JobAssembler",
    "expand_external",
    "MatchMethod",
    "MatchReport",
    "resolve_matches",
    "order_by_placement",
    "placement_rank",
    "fast_mux_available",
    "validate_jobs",
]
