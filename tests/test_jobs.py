"""Tests for the in-memory run registry."""

from __future__ import annotations

import asyncio

import pytest

from backend.asset_insight.jobs.jobs import (
    cancel_job,
    create_job,
    discard_job,
    get_job,
    start_job,
)


class TestJobs:
    def test_create_and_get(self):
        state = create_job()
        assert state.phase == "idle"
        assert get_job(state.run_id) is state
        assert get_job("missing") is None

    @pytest.mark.asyncio
    async def test_background_run_completes(self):
        state = create_job()

        async def work():
            state.phase = "done"
            return state

        result = await start_job(state, work())
        assert result is state
        assert get_job(state.run_id).phase == "done"

    @pytest.mark.asyncio
    async def test_crash_recorded_not_raised(self):
        state = create_job()

        async def work():
            raise RuntimeError("kaboom")

        result = await start_job(state, work())
        assert result.phase == "failed"
        assert result.error == "kaboom"

    @pytest.mark.asyncio
    async def test_cancel_in_flight(self):
        state = create_job()
        started = asyncio.Event()

        async def work():
            started.set()
            await asyncio.sleep(60)
            return state

        task = start_job(state, work())
        await started.wait()

        assert cancel_job(state.run_id) is True
        with pytest.raises(asyncio.CancelledError):
            await task
        assert state.phase == "cancelled"

    def test_cancel_finished_run_keeps_phase(self):
        state = create_job()
        state.phase = "done"
        assert cancel_job(state.run_id) is True
        assert state.phase == "done"

    def test_discard(self):
        state = create_job()
        assert discard_job(state.run_id) is True
        assert get_job(state.run_id) is None
        assert discard_job(state.run_id) is False
        assert cancel_job("missing") is False

    def test_inline_run_cannot_be_cancelled(self):
        state = create_job()
        state.phase = "analyzing"
        assert cancel_job(state.run_id) is False
        assert state.phase == "analyzing"

    def test_discard_inline_run(self):
        state = create_job()
        state.phase = "analyzing"
        assert discard_job(state.run_id) is True
        assert get_job(state.run_id) is None


class TestRetention:
    def test_oldest_finished_runs_evicted(self, monkeypatch):
        monkeypatch.setenv("ASSET_INSIGHT_MAX_FINISHED_RUNS", "2")
        finished = []
        for _ in range(4):
            state = create_job()
            state.phase = "done"
            finished.append(state.run_id)
        running = create_job()
        running.phase = "analyzing"

        newest = create_job()

        assert [get_job(run_id) is not None for run_id in finished] == [False, False, True, True]
        assert get_job(running.run_id) is running
        assert get_job(newest.run_id) is newest

    def test_running_runs_never_evicted(self, monkeypatch):
        monkeypatch.setenv("ASSET_INSIGHT_MAX_FINISHED_RUNS", "0")
        running = create_job()
        running.phase = "synthesizing"
        failed = create_job()
        failed.phase = "failed"

        create_job()

        assert get_job(running.run_id) is running
        assert get_job(failed.run_id) is None
