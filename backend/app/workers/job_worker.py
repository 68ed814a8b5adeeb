"""
Worker pool that pulls queued jobs and runs them.

Each job is one sequential pipeline; up to ``concurrency`` jobs run at the
same time. The worker never retries a job: re-running creates a new one.
"""

from __future__ import annotations

import asyncio
import logging

from app import config
from app.models.workflow import JobRequest
from app.services.job_executor import ExecutionContext, run_job
from app.services.job_queue import JobQueue

logger = logging.getLogger(__name__)


class JobWorker:

    def __init__(
        self,
        queue: JobQueue,
        ctx: ExecutionContext,
        concurrency: int | None = None,
        poll_timeout: float = 5.0,
    ):
        self.queue = queue
        self.ctx = ctx
        self.concurrency = concurrency or config.worker_concurrency()
        self.poll_timeout = poll_timeout
        self._slots = asyncio.Semaphore(self.concurrency)
        self._running: set[asyncio.Task] = set()
        self._loop_task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    @property
    def active_jobs(self) -> int:
        return len(self._running)

    async def _run(self, request: JobRequest) -> None:
        try:
            await run_job(request, self.ctx)
        except Exception:
            # run_job already records failures; this only guards the pool itself.
            logger.exception("Worker task for job %s crashed", request.job_id)
        finally:
            self._slots.release()

    async def _loop(self) -> None:
        logger.info("Job worker started (concurrency %d)", self.concurrency)
        while not self._stopping.is_set():
            await self._slots.acquire()
            try:
                request = await self.queue.dequeue(timeout=self.poll_timeout)
            except asyncio.CancelledError:
                self._slots.release()
                raise
            except Exception:
                self._slots.release()
                logger.exception("Failed to read from job queue")
                await asyncio.sleep(1.0)
                continue

            if request is None:
                self._slots.release()
                continue

            logger.info("Picked up job %s", request.job_id)
            task = asyncio.create_task(self._run(request))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    def start(self) -> None:
        if self._loop_task is None:
            self._stopping.clear()
            self._loop_task = asyncio.create_task(self._loop())

    async def stop(self, drain: bool = True) -> None:
        """Stop pulling new jobs; by default wait for in-flight jobs to finish."""
        self._stopping.set()
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self._running:
            if drain:
                await asyncio.gather(*self._running, return_exceptions=True)
            else:
                for task in list(self._running):
                    task.cancel()
                await asyncio.gather(*self._running, return_exceptions=True)
        logger.info("Job worker stopped")
