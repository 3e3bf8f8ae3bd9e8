"""Unit tests for the mux queue."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mkvbatch.errors import ExecutionError, SettingsError
from mkvbatch.jobs.manager import (
    ABORTED_MESSAGE,
    START_FAILED_MESSAGE,
    STOPPED_MESSAGE,
    MuxQueue,
)
from mkvbatch.jobs.models import MuxJob
from mkvbatch.models.job import JobRequest
from mkvbatch.models.media import FileStatus, VideoFile
from mkvbatch.models.mux import MuxProgressEvent, MuxSettings, MuxStatus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _make_request(name: str, status: FileStatus = FileStatus.PENDING) -> JobRequest:
    video = VideoFile(id=name, path=f"/media/{name}.mkv", size=1000, status=status)
    return JobRequest(id=JobRequest.id_for(video), video=video)


def _make_executor(start_error: Exception | None = None) -> MagicMock:
    executor = MagicMock()
    executor.start = AsyncMock(side_effect=start_error)
    executor.stop = AsyncMock()
    return executor


def _event(job_id: str, status: MuxStatus, progress: int = 0, **kwargs) -> MuxProgressEvent:
    return MuxProgressEvent(job_id=job_id, status=status, progress=progress, **kwargs)


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def queue(clock: _Clock) -> MuxQueue:
    q = MuxQueue(clock=clock)
    q.enqueue([_make_request("Ep01"), _make_request("Ep02")], revision=3)
    return q


@pytest.fixture
def settings() -> MuxSettings:
    return MuxSettings(destination_dir="/out", max_parallel_jobs=2)


# ---------------------------------------------------------------------------
# MuxJob
# ---------------------------------------------------------------------------


class TestMuxJob:
    def test_transitions(self) -> None:
        job = MuxJob(id="j", video_id="v")
        assert job.can_move_to(MuxStatus.PROCESSING)
        assert job.can_move_to(MuxStatus.ERROR)
        assert not job.can_move_to(MuxStatus.COMPLETED)

    def test_terminal_states(self) -> None:
        job = MuxJob(id="j", video_id="v", status=MuxStatus.COMPLETED)
        assert not job.is_active
        assert not job.can_move_to(MuxStatus.PROCESSING)
        assert job.can_move_to(MuxStatus.COMPLETED)


# ---------------------------------------------------------------------------
# Enqueue
# ---------------------------------------------------------------------------


class TestEnqueue:
    def test_jobs_start_queued(self, queue: MuxQueue) -> None:
        jobs = queue.list_jobs()
        assert [j.id for j in jobs] == ["job-Ep01", "job-Ep02"]
        assert all(j.status == MuxStatus.QUEUED for j in jobs)
        assert jobs[0].video_name == "Ep01.mkv"
        assert jobs[0].size_before == 1000
        assert queue.revision == 3

    def test_completed_videos_skipped(self) -> None:
        q = MuxQueue()
        added = q.enqueue(
            [_make_request("Ep01", FileStatus.COMPLETED), _make_request("Ep02")], revision=1
        )
        assert [j.id for j in added] == ["job-Ep02"]

    def test_processing_job_not_replaced(self, queue: MuxQueue) -> None:
        queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 10))

        added = queue.enqueue([_make_request("Ep01"), _make_request("Ep02")], revision=4)

        assert [j.id for j in added] == ["job-Ep02"]
        assert queue.get_job("job-Ep01").status == MuxStatus.PROCESSING

    def test_drops_queued_jobs_missing_from_pass(self, queue: MuxQueue) -> None:
        renamed = _make_request("Ep01").video.model_copy(update={"name": "new"})
        fresh = JobRequest(id="job-Ep01", video=renamed)

        queue.enqueue([fresh], revision=4)

        assert [j.id for j in queue.list_jobs()] == ["job-Ep01"]
        assert queue.queued_requests() == [fresh]

    def test_same_revision_pass_also_replaces_queue(self, queue: MuxQueue) -> None:
        """Sessions posted to the API each start a fresh store at the same revision."""
        queue.enqueue([_make_request("Ep01")], revision=3)
        assert [j.id for j in queue.list_jobs()] == ["job-Ep01"]

    def test_new_pass_keeps_finished_jobs(self, queue: MuxQueue) -> None:
        queue.apply_progress(_event("job-Ep02", MuxStatus.PROCESSING, 10))
        queue.apply_progress(_event("job-Ep02", MuxStatus.COMPLETED, 100))

        queue.enqueue([_make_request("Ep01")], revision=4)

        assert queue.get_job("job-Ep02").status == MuxStatus.COMPLETED

    def test_clear(self, queue: MuxQueue) -> None:
        queue.clear()
        assert queue.list_jobs() == []
        assert queue.revision is None


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


class TestSubmit:
    @pytest.mark.asyncio
    async def test_starts_executor_with_effective_settings(
        self, queue: MuxQueue, settings: MuxSettings
    ) -> None:
        executor = _make_executor()
        requested = settings.model_copy(update={"max_parallel_jobs": 1})

        with patch("os.cpu_count", return_value=8):
            submitted = await queue.submit(executor, requested, revision=3)

        assert submitted is True
        executor.on_progress.assert_called_once_with(queue.apply_progress)
        effective, requests = executor.start.await_args.args
        assert effective.max_parallel_jobs == 2
        assert [r.id for r in requests] == ["job-Ep01", "job-Ep02"]

    @pytest.mark.asyncio
    async def test_removed_video_is_not_submitted(
        self, queue: MuxQueue, settings: MuxSettings
    ) -> None:
        queue.enqueue([_make_request("Ep01")], revision=5)
        executor = _make_executor()

        assert await queue.submit(executor, settings, revision=5) is True

        _, requests = executor.start.await_args.args
        assert [r.id for r in requests] == ["job-Ep01"]

    @pytest.mark.asyncio
    async def test_stale_revision(self, queue: MuxQueue, settings: MuxSettings) -> None:
        executor = _make_executor()
        assert await queue.submit(executor, settings, revision=4) is False
        executor.start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_after_stop(self, queue: MuxQueue, settings: MuxSettings) -> None:
        await queue.stop()
        executor = _make_executor()
        assert await queue.submit(executor, settings, revision=3) is False
        executor.start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_queue(self, settings: MuxSettings) -> None:
        q = MuxQueue()
        q.enqueue([], revision=0)
        assert await q.submit(_make_executor(), settings, revision=0) is False

    @pytest.mark.asyncio
    async def test_bad_settings(self, queue: MuxQueue) -> None:
        with pytest.raises(SettingsError):
            await queue.submit(_make_executor(), MuxSettings(), revision=3)

    @pytest.mark.asyncio
    async def test_start_failure_marks_jobs(
        self, queue: MuxQueue, settings: MuxSettings
    ) -> None:
        executor = _make_executor(start_error=OSError("mkvmerge not found"))

        with pytest.raises(ExecutionError, match="mkvmerge not found"):
            await queue.submit(executor, settings, revision=3)

        for job in queue.list_jobs():
            assert job.status == MuxStatus.ERROR
            assert job.error_message == START_FAILED_MESSAGE


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class TestProgress:
    def test_processing_then_completed(self, queue: MuxQueue, clock: _Clock) -> None:
        queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 0))
        clock.advance(30)
        job = queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 25))

        assert job is not None
        assert job.progress == 25
        assert job.eta_seconds == 90.0

        clock.advance(90)
        job = queue.apply_progress(
            _event("job-Ep01", MuxStatus.COMPLETED, 99, size_after=900)
        )
        assert job.status == MuxStatus.COMPLETED
        assert job.progress == 100
        assert job.size_after == 900
        assert job.eta_seconds is None
        assert job.completed_at == clock.now

    def test_no_eta_without_progress(self, queue: MuxQueue) -> None:
        job = queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 0))
        assert job.eta_seconds is None

    def test_illegal_transition_ignored(self, queue: MuxQueue) -> None:
        job = queue.apply_progress(_event("job-Ep01", MuxStatus.COMPLETED, 100))
        assert job.status == MuxStatus.QUEUED

    def test_terminal_state_is_final(self, queue: MuxQueue) -> None:
        queue.apply_progress(_event("job-Ep01", MuxStatus.ERROR, error_message="boom"))
        job = queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 10))
        assert job.status == MuxStatus.ERROR
        assert job.error_message == "boom"

    def test_unknown_job(self, queue: MuxQueue) -> None:
        assert queue.apply_progress(_event("job-nope", MuxStatus.PROCESSING)) is None

    @pytest.mark.asyncio
    async def test_abort_on_errors(self, queue: MuxQueue, settings: MuxSettings) -> None:
        queue.enqueue([_make_request(n) for n in ("Ep01", "Ep02", "Ep03")], revision=3)
        await queue.submit(
            _make_executor(), settings.model_copy(update={"abort_on_errors": True}), revision=3
        )
        queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 5))
        queue.apply_progress(_event("job-Ep02", MuxStatus.PROCESSING, 5))

        queue.apply_progress(_event("job-Ep01", MuxStatus.ERROR, message="bad header"))

        assert queue.get_job("job-Ep01").error_message == "bad header"
        assert queue.get_job("job-Ep02").status == MuxStatus.PROCESSING
        assert queue.get_job("job-Ep03").status == MuxStatus.ERROR
        assert queue.get_job("job-Ep03").error_message == ABORTED_MESSAGE

    @pytest.mark.asyncio
    async def test_errors_do_not_abort_by_default(
        self, queue: MuxQueue, settings: MuxSettings
    ) -> None:
        await queue.submit(_make_executor(), settings, revision=3)
        queue.apply_progress(_event("job-Ep01", MuxStatus.ERROR))
        assert queue.get_job("job-Ep01").error_message == "Muxing failed."
        assert queue.get_job("job-Ep02").status == MuxStatus.QUEUED


# ---------------------------------------------------------------------------
# Stop
# ---------------------------------------------------------------------------


class TestStop:
    @pytest.mark.asyncio
    async def test_marks_active_jobs(self, queue: MuxQueue) -> None:
        queue.enqueue([_make_request(n) for n in ("Ep01", "Ep02", "Ep03")], revision=3)
        queue.apply_progress(_event("job-Ep01", MuxStatus.PROCESSING, 10))
        queue.apply_progress(_event("job-Ep01", MuxStatus.COMPLETED, 100))
        queue.apply_progress(_event("job-Ep02", MuxStatus.PROCESSING, 10))
        executor = _make_executor()

        count = await queue.stop(executor)

        executor.stop.assert_awaited_once()
        assert count == 2
        assert queue.stopped
        assert queue.get_job("job-Ep01").status == MuxStatus.COMPLETED
        for job_id in ("job-Ep02", "job-Ep03"):
            job = queue.get_job(job_id)
            assert job.status == MuxStatus.ERROR
            assert job.error_message == STOPPED_MESSAGE

    @pytest.mark.asyncio
    async def test_enqueue_clears_stop(self, queue: MuxQueue) -> None:
        await queue.stop()
        queue.enqueue([_make_request("Ep01")], revision=5)
        assert not queue.stopped
        assert queue.get_job("job-Ep01").status == MuxStatus.QUEUED
