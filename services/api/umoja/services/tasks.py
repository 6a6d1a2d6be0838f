"""In-process dispatcher for fire-and-forget side effects.

Request handlers return as soon as their authoritative write is committed and
hand everything else (orchestrator runs, trust recalculation, SMS) to this
dispatcher:
- submit() never blocks and never raises into the caller
- the queue is bounded; when full the job is dropped and logged (the periodic
  sweep and the next recalculation trigger reconcile what was lost)
- a fixed pool of workers drains the queue, each job under a timeout
- failures are logged with the job name and its context so they can be replayed
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
from typing import Any

from umoja.settings import get_settings

logger = logging.getLogger("uvicorn.error")


@dataclass
class Job:
    name: str
    func: Callable[[], Awaitable[Any]]
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class DispatcherStats:
    submitted: int = 0
    dropped: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0


class SideEffectDispatcher:
    """Bounded worker pool for detached jobs."""

    def __init__(self, workers: int = 4, max_queue: int = 1000, job_timeout: float = 60.0):
        self.workers = workers
        self.job_timeout = job_timeout
        self._queue: asyncio.Queue[Job] = asyncio.Queue(maxsize=max_queue)
        self._tasks: list[asyncio.Task] = []
        self.stats = DispatcherStats()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"side-effect-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"[tasks] dispatcher started workers={self.workers}")

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """Give queued jobs a chance to finish, then cancel the workers."""
        if not self._tasks:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[tasks] stopping with {self._queue.qsize()} jobs still queued")
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("[tasks] dispatcher stopped")

    def submit(self, name: str, func: Callable[[], Awaitable[Any]], **context: Any) -> bool:
        """Queue a job without waiting for it.

        Args:
            name: Job name for logs (e.g. "order_completed").
            func: Zero-argument coroutine function to run.
            **context: Entity ids logged alongside any failure.

        Returns:
            True if queued, False if dropped because the queue is full.
        """
        try:
            self._queue.put_nowait(Job(name=name, func=func, context=context))
        except asyncio.QueueFull:
            self.stats.dropped += 1
            logger.error(f"[tasks] queue full, dropped job={name} context={context}")
            return False
        self.stats.submitted += 1
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await asyncio.wait_for(job.func(), timeout=self.job_timeout)
                self.stats.succeeded += 1
            except asyncio.TimeoutError:
                self.stats.timed_out += 1
                logger.error(f"[tasks] job={job.name} timed out after {self.job_timeout}s context={job.context}")
            except asyncio.CancelledError:
                raise
            except Exception:
                self.stats.failed += 1
                logger.exception(f"[tasks] job={job.name} failed context={job.context}")
            finally:
                self._queue.task_done()


# Global dispatcher (started in the app lifespan)
_dispatcher: SideEffectDispatcher | None = None


def get_dispatcher() -> SideEffectDispatcher:
    """Get or create the dispatcher singleton."""
    global _dispatcher
    if _dispatcher is None:
        settings = get_settings()
        _dispatcher = SideEffectDispatcher(
            workers=settings.side_effect_workers,
            max_queue=settings.side_effect_queue_size,
            job_timeout=settings.side_effect_timeout_seconds,
        )
    return _dispatcher


def set_dispatcher(dispatcher: SideEffectDispatcher | None) -> None:
    """Swap the singleton (tests use a fresh dispatcher per event loop)."""
    global _dispatcher
    _dispatcher = dispatcher
