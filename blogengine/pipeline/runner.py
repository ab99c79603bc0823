"""
Single-flight job execution.

``RunStatus`` owns the one run slot shared by generation runs and migration
sweeps. ``JobRunner`` claims the slot with an atomic check-and-set, executes
the job and always releases the slot in a ``finally`` block, recording the
outcome as the last run result. A trigger while the slot is held is rejected
immediately; nothing is queued.
"""

import asyncio
import threading
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from blogengine.core.errors import ConcurrencyConflict
from blogengine.core.logging import get_logger

logger = get_logger(__name__)

JobFunc = Callable[[], Awaitable[Any]]


class RunStatus:
    """Run slot plus the last outcome of each job kind."""

    def __init__(self):
        self._lock = threading.Lock()
        self.is_running = False
        self.current_job: Optional[str] = None
        self.started_at: Optional[str] = None
        self.last_run_time: Optional[str] = None
        self.last_run_result: Optional[Dict[str, Any]] = None
        self.last_results: Dict[str, Dict[str, Any]] = {}

    def try_start(self, job: str) -> bool:
        """Claim the slot for ``job``; False if another job holds it."""
        with self._lock:
            if self.is_running:
                return False
            self.is_running = True
            self.current_job = job
            self.started_at = datetime.now(timezone.utc).isoformat()
            return True

    def finish(self, job: str, result: Dict[str, Any]) -> None:
        """Release the slot and record ``result`` as the latest outcome."""
        with self._lock:
            self.is_running = False
            self.current_job = None
            self.started_at = None
            self.last_run_time = datetime.now(timezone.utc).isoformat()
            self.last_run_result = result
            self.last_results[job] = result

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'isRunning': self.is_running,
                'currentJob': self.current_job,
                'startedAt': self.started_at,
                'lastRunTime': self.last_run_time,
                'lastRunResult': self.last_run_result,
                'lastResults': dict(self.last_results),
            }


def summarize(result: Any) -> Dict[str, Any]:
    """Turn a job's return value into a plain dict."""
    if result is None:
        return {'success': True}
    if hasattr(result, 'to_dict'):
        return result.to_dict()
    if isinstance(result, dict):
        return dict(result)
    return {'success': True, 'result': result}


class JobRunner:
    """Runs jobs one at a time against a shared RunStatus."""

    def __init__(self, status: Optional[RunStatus] = None):
        self.status = status or RunStatus()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self.status.is_running

    async def _execute(self, job: str, func: JobFunc) -> Dict[str, Any]:
        """Run a job whose slot is already claimed; always releases it."""
        start_time = time.time()
        logger.info(f"Job '{job}' started")
        summary: Dict[str, Any] = {'success': False, 'error': 'job did not complete'}
        try:
            summary = summarize(await func())
            summary.setdefault('success', True)
        except Exception as e:
            logger.exception(f"Job '{job}' failed: {e}")
            summary = {'success': False, 'error': str(e)}
        finally:
            summary['job'] = job
            summary['durationSeconds'] = round(time.time() - start_time, 2)
            self.status.finish(job, summary)
            logger.info(f"Job '{job}' finished in {summary['durationSeconds']}s (success={summary.get('success')})")
        return summary

    async def run(self, job: str, func: JobFunc) -> Dict[str, Any]:
        """
        Run a job to completion.

        Returns:
            The job summary, or a ``busy`` summary if another job holds the slot
        """
        if not self.status.try_start(job):
            logger.warning(f"Job '{job}' rejected: '{self.status.current_job}' is running")
            return {'success': False, 'busy': True, 'job': job, 'runningJob': self.status.current_job}
        return await self._execute(job, func)

    def start(self, job: str, func: JobFunc) -> asyncio.Task:
        """
        Start a job in the background and return its task.

        Raises:
            ConcurrencyConflict: If another job holds the slot
        """
        if not self.status.try_start(job):
            raise ConcurrencyConflict(self.status.current_job or "")
        task = asyncio.create_task(self._execute(job, func), name=f"job-{job}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every background job started by this runner."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Wait up to ``timeout`` seconds for background jobs, then cancel the rest.

        A cancelled job still releases the run slot and records a failed result.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info(f"Waiting for {len(tasks)} running job(s) before shutdown")
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            logger.warning(f"Cancelling {task.get_name()} at shutdown")
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
