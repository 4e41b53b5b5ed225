"""Background execution of pipeline runs, one task per job."""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Any, Awaitable, Callable, Coroutine, Dict, Set

logger = logging.getLogger(__name__)

RunFn = Callable[[str], Awaitable[None]]


class JobDispatcher:
    """
    Starts ``run(job_id)`` as a detached asyncio task and returns immediately.

    At most one task per job runs at a time. Submitting a job that is already
    running schedules exactly one follow-up run after the current one ends.
    """

    def __init__(self, run: RunFn) -> None:
        self._run = run
        self._tasks: Dict[str, asyncio.Task] = {}
        self._rerun: Set[str] = set()
        self._background: Set[asyncio.Task] = set()
        self._lock = Lock()

    def submit(self, job_id: str) -> bool:
        """Schedule a run. Returns False when it was deferred behind a running task."""
        with self._lock:
            task = self._tasks.get(job_id)
            if task is not None and not task.done():
                self._rerun.add(job_id)
                return False
            self._start(job_id)
            return True

    def _start(self, job_id: str) -> None:
        task = asyncio.get_running_loop().create_task(self._run(job_id), name=f"job:{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda done, jid=job_id: self._on_done(jid, done))

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("job_task_crashed job_id=%s error=%s", job_id, task.exception())
        with self._lock:
            if self._tasks.get(job_id) is task:
                del self._tasks[job_id]
            if job_id in self._rerun:
                self._rerun.discard(job_id)
                self._start(job_id)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run a side task (e.g. a webhook delivery) detached from the caller."""
        task = asyncio.get_running_loop().create_task(coro)
        with self._lock:
            self._background.add(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        with self._lock:
            self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("background_task_crashed error=%s", task.exception())

    def is_running(self, job_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(job_id)
            return task is not None and not task.done()

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for task in self._tasks.values() if not task.done())

    async def drain(self) -> None:
        """Wait until no job task (including follow-up runs) is left."""
        while True:
            with self._lock:
                tasks = [task for task in self._tasks.values() if not task.done()]
                tasks.extend(task for task in self._background if not task.done())
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
