"""Mux queue management for mkvbatch."""

from mkvbatch.jobs.manager import MuxQueue
from mkvbatch.jobs.models import MuxJob

__all__ = ["MuxJob", "MuxQueue"]
