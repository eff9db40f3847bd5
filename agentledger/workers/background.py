"""
Background worker for side effects of the write path

Anomaly checks and webhook fan-out run here, decoupled from the request.
A job that raises is retried (at-least-once within the process) and its
final failure is logged; nothing ever propagates back to the submitter.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Any]]


@dataclass
class Job:
    name: str
    factory: JobFactory
    attempt: int = 0


class BackgroundWorker:
    """asyncio queue drained by a fixed pool of consumer tasks"""

    def __init__(
        self,
        concurrency: int = 4,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.5,
        max_queue_size: int = 1000,
    ):
        self.concurrency = concurrency
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.max_queue_size = max_queue_size

        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []
        self._accepting = False

    async def start(self):
        if self._tasks:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._tasks = [
            asyncio.create_task(self._consume(i), name=f"background-worker-{i}")
            for i in range(self.concurrency)
        ]
        self._accepting = True
        logger.info(f"✅ Background worker started ({self.concurrency} consumers)")

    def submit(self, name: str, factory: JobFactory) -> bool:
        """Enqueue a job; False if the worker is stopped or full"""
        if not self._accepting:
            logger.warning(f"⚠️ Worker not accepting jobs, dropped: {name}")
            return False

        try:
            self._queue.put_nowait(Job(name=name, factory=factory))
        except asyncio.QueueFull:
            logger.warning(f"⚠️ Worker queue full, dropped: {name}")
            return False
        return True

    async def _consume(self, worker_id: int):
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: Job):
        job.attempt += 1
        try:
            await job.factory()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if job.attempt >= self.max_attempts:
                logger.error(f"❌ Job {job.name} failed after {job.attempt} attempts: {e}", exc_info=True)
                return

            logger.warning(f"⚠️ Job {job.name} failed (attempt {job.attempt}/{self.max_attempts}): {e}")
            await asyncio.sleep(self.retry_delay_seconds * job.attempt)
            try:
                self._queue.put_nowait(job)
            except asyncio.QueueFull:
                logger.error(f"❌ Job {job.name} dropped, queue full on retry")

    async def drain(self):
        """Wait until every queued job (and its retries) has finished"""
        if self._queue is not None:
            await self._queue.join()

    async def shutdown(self, timeout: float = 10.0):
        """Stop intake, drain in-flight jobs within timeout, then stop consumers"""
        self._accepting = False

        if self._queue is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except asyncio.TimeoutError:
                logger.warning(f"⚠️ Worker shutdown timed out, {self._queue.qsize()} jobs abandoned")

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Background worker stopped")
