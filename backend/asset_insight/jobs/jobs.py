import asyncio
import uuid
from typing import Awaitable, Dict, Optional

from ..config import get_settings
from ..logging_config import log
from ..models import RunState

_jobs: Dict[str, RunState] = {}
_tasks: Dict[str, "asyncio.Task[RunState]"] = {}


def _evict_finished(keep: int) -> None:
    """Forget the oldest finished runs so at most `keep` of them remain."""
    finished = [run_id for run_id, state in _jobs.items() if state.finished]
    for run_id in finished[: max(len(finished) - keep, 0)]:
        _jobs.pop(run_id, None)
        log.info(f"🧹 Evicted finished run {run_id}")


def create_job() -> RunState:
    _evict_finished(get_settings().max_finished_runs)
    run_id = str(uuid.uuid4())
    state = RunState(run_id=run_id)
    _jobs[run_id] = state
    return state


def get_job(run_id: str) -> Optional[RunState]:
    return _jobs.get(run_id)


async def _guard(state: RunState, work: Awaitable[RunState]) -> RunState:
    try:
        return await work
    except asyncio.CancelledError:
        state.phase = "cancelled"
        raise
    except Exception as e:
        log.error(f"💥 Run {state.run_id} crashed: {e}")
        state.phase = "failed"
        state.error = str(e)
        return state
    finally:
        _tasks.pop(state.run_id, None)


def start_job(state: RunState, work: Awaitable[RunState]) -> "asyncio.Task[RunState]":
    """Run `work` in the background; crashes end up in state.error."""
    task = asyncio.create_task(_guard(state, work))
    _tasks[state.run_id] = task
    return task


def cancel_job(run_id: str) -> bool:
    """
    Cancel a background run. A finished run is left as it is.
    Returns False for unknown runs and for runs executing inline
    (no background task to cancel).
    """
    state = _jobs.get(run_id)
    if state is None:
        return False
    if state.finished:
        return True
    task = _tasks.pop(run_id, None)
    if task is None or task.done():
        return False
    task.cancel()
    state.phase = "cancelled"
    return True


def discard_job(run_id: str) -> bool:
    """Cancel (if running in the background) and forget the run."""
    if run_id not in _jobs:
        return False
    cancel_job(run_id)
    _jobs.pop(run_id, None)
    return True


def clear_jobs() -> None:
    for run_id in list(_jobs):
        discard_job(run_id)
