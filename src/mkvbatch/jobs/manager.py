"""Mux queue: observes executor progress for submitted jobs."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from mkvbatch.errors import ExecutionError
from mkvbatch.jobs.models import MuxJob
from mkvbatch.models.job import JobRequest
from mkvbatch.models.media import FileStatus
from mkvbatch.models.mux import MuxProgressEvent, MuxSettings, MuxStatus
from mkvbatch.services.interfaces import IMuxExecutor
from mkvbatch.services.preflight import effective_settings, validate_settings

logger = logging.getLogger(__name__)

STOPPED_MESSAGE = "Stopped by user."
START_FAILED_MESSAGE = "Failed to start muxing. Check logs."
ABORTED_MESSAGE = "Aborted after an earlier job failed."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MuxQueue:
    """Tracks one MuxJob per submitted JobRequest.

    Jobs are stored in-memory (dict, insertion ordered). The executor does
    the actual work; the queue enforces the status state machine and the
    stop and abort-on-error rules.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._jobs: dict[str, MuxJob] = {}
        self._requests: dict[str, JobRequest] = {}
        self._clock = clock
        self._abort_on_errors = False
        self.revision: int | None = None
        self.stopped = False

    # ------------------------------------------------------------------
    # Queue contents
    # ------------------------------------------------------------------

    def enqueue(self, requests: Sequence[JobRequest], revision: int) -> list[MuxJob]:
        """Queue freshly assembled requests.

        Requests whose video already completed are skipped; jobs that are
        not active are replaced. A call stands for one whole assembly pass:
        queued jobs that this pass did not re-queue are dropped so their old
        requests never reach the executor. Enqueuing clears an earlier stop.

        Args:
            requests: Job requests from one assembly pass
            revision: Store revision the requests were assembled at

        Returns:
            Newly queued jobs
        """
        added: list[MuxJob] = []
        for request in requests:
            if request.video.status == FileStatus.COMPLETED:
                continue
            existing = self._jobs.get(request.id)
            if existing is not None and existing.status == MuxStatus.PROCESSING:
                logger.warning("Job %s is still processing, not re-queued", request.id)
                continue
            job = MuxJob(
                id=request.id,
                video_id=request.video.id,
                video_name=request.video.file_name,
                size_before=request.video.size or None,
                revision=revision,
                created_at=self._clock(),
            )
            self._jobs[job.id] = job
            self._requests[job.id] = request
            added.append(job)

        self._drop_stale_queued({job.id for job in added})
        self.revision = revision
        self.stopped = False
        logger.info("Queued %d job(s) at revision %d", len(added), revision)
        return added

    def _drop_stale_queued(self, fresh: set[str]) -> None:
        stale = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status == MuxStatus.QUEUED and job_id not in fresh
        ]
        for job_id in stale:
            del self._jobs[job_id]
            del self._requests[job_id]
        if stale:
            logger.info("Dropped %d stale queued job(s): %s", len(stale), ", ".join(stale))

    def get_job(self, job_id: str) -> MuxJob | None:
        """Get a job by ID."""
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[MuxJob]:
        """List all jobs in queue order."""
        return list(self._jobs.values())

    def queued_requests(self) -> list[JobRequest]:
        return [
            self._requests[j.id] for j in self._jobs.values() if j.status == MuxStatus.QUEUED
        ]

    def clear(self) -> None:
        """Drop every job and reset the stop flag."""
        self._jobs.clear()
        self._requests.clear()
        self.revision = None
        self.stopped = False

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def submit(
        self,
        executor: IMuxExecutor,
        settings: MuxSettings,
        revision: int,
    ) -> bool:
        """Hand the queued requests to the executor.

        Args:
            executor: Muxing executor
            settings: User mux settings (parallelism is recomputed)
            revision: Current store revision

        Returns:
            False if nothing was submitted (stopped, stale or empty queue)

        Raises:
            SettingsError: If the settings are incomplete
            ExecutionError: If the executor failed to start
        """
        if self.stopped:
            logger.warning("Queue was stopped; re-enqueue before submitting")
            return False
        if revision != self.revision:
            logger.warning(
                "Queued jobs are stale (queued at revision %s, store at %d)",
                self.revision,
                revision,
            )
            return False

        requests = self.queued_requests()
        if not requests:
            return False

        validate_settings(settings)
        effective = effective_settings(settings, len(requests))
        self._abort_on_errors = effective.abort_on_errors
        executor.on_progress(self.apply_progress)

        try:
            await executor.start(effective, requests)
        except Exception as e:
            logger.exception("Executor failed to start %d job(s)", len(requests))
            for job in self._jobs.values():
                if job.status == MuxStatus.QUEUED:
                    self._fail(job, START_FAILED_MESSAGE)
            raise ExecutionError(str(e)) from e

        logger.info(
            "Submitted %d job(s), %d in parallel", len(requests), effective.max_parallel_jobs
        )
        return True

    async def stop(self, executor: IMuxExecutor | None = None) -> int:
        """Stop the queue and mark every active job as failed.

        Returns:
            Number of jobs marked as stopped
        """
        if executor is not None:
            await executor.stop()
        stopped = 0
        for job in self._jobs.values():
            if job.is_active:
                self._fail(job, STOPPED_MESSAGE)
                stopped += 1
        self.stopped = True
        logger.info("Stopped queue (%d job(s) interrupted)", stopped)
        return stopped

    def apply_progress(self, event: MuxProgressEvent) -> MuxJob | None:
        """Apply one executor progress event.

        Illegal transitions and unknown job ids are logged and ignored.
        """
        job = self._jobs.get(event.job_id)
        if job is None:
            logger.warning("Progress for unknown job %s", event.job_id)
            return None
        if not job.can_move_to(event.status):
            logger.warning(
                "Ignoring transition %s -> %s for job %s",
                job.status.value,
                event.status.value,
                job.id,
            )
            return job

        now = self._clock()
        if event.status == MuxStatus.PROCESSING and job.started_at is None:
            job.started_at = now
        job.status = event.status
        job.progress = event.progress
        if event.message is not None:
            job.message = event.message
        if event.size_after is not None:
            job.size_after = event.size_after

        if event.status == MuxStatus.PROCESSING:
            job.eta_seconds = self._eta(job, now)
        elif event.status == MuxStatus.COMPLETED:
            job.progress = 100
            job.eta_seconds = None
            job.completed_at = now
        elif event.status == MuxStatus.ERROR:
            self._fail(job, event.error_message or event.message or "Muxing failed.")
            if self._abort_on_errors:
                self._abort_remaining()
        return job

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fail(self, job: MuxJob, message: str) -> None:
        job.status = MuxStatus.ERROR
        job.error_message = message
        job.eta_seconds = None
        job.completed_at = self._clock()

    def _abort_remaining(self) -> None:
        for job in self._jobs.values():
            if job.status == MuxStatus.QUEUED:
                self._fail(job, ABORTED_MESSAGE)

    @staticmethod
    def _eta(job: MuxJob, now: datetime) -> float | None:
        if job.started_at is None or job.progress <= 0:
            return None
        elapsed = (now - job.started_at).total_seconds()
        return round(elapsed * (100 - job.progress) / job.progress, 1)
