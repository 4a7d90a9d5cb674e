"""
Serial execution queue for sync operations.

A single worker task drains a FIFO queue, so sync operations run strictly
in submission order and never interleave. Callers either wait for their
job (``run``) or hand it off and return immediately (``submit``).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..exceptions import EngineClosedError
from ..logging_utils import get_sync_logger

logger = get_sync_logger("queue")

T = TypeVar("T")


@dataclass
class _Job:
    fn: Callable[[], Awaitable[Any]]
    description: str
    future: asyncio.Future[Any] | None = None


class SerialExecutionQueue:
    """FIFO queue with exactly one worker.

    Jobs are zero-argument callables returning an awaitable. Once submitted
    a job always runs to completion; there is no cancellation or deadline.

    Example:
        >>> queue = SerialExecutionQueue()
        >>> result = await queue.run(engine.full_sync)
        >>> queue.submit(lambda: engine.sync_keys(["theme"]), "sync theme")
        >>> await queue.close()
    """

    def __init__(self, name: str = "zephyr") -> None:
        self.name = name
        self._queue: asyncio.Queue[_Job | None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of jobs waiting to run."""
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        """Start the worker. Must be called with a running event loop."""
        self._ensure_started("start queue")

    def in_worker(self) -> bool:
        """True when called from inside a job on this queue."""
        return self._worker is not None and asyncio.current_task() is self._worker

    async def run(self, fn: Callable[[], Awaitable[T]], description: str = "") -> T:
        """Submit a job and wait for its result.

        Exceptions raised by the job propagate to the caller. When called
        from inside another job the callable runs inline, since waiting on
        the queue from its own worker would never finish.
        """
        if self.in_worker():
            return await fn()

        queue = self._ensure_started("run job")
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        queue.put_nowait(_Job(fn, description or _describe(fn), future))
        return await future

    def submit(self, fn: Callable[[], Awaitable[Any]], description: str = "") -> None:
        """Submit a job without waiting for it. Failures are logged, not raised."""
        queue = self._ensure_started("submit job")
        queue.put_nowait(_Job(fn, description or _describe(fn)))

    async def join(self) -> None:
        """Wait until every job submitted so far has run."""
        if self._queue is None:
            return
        if self.in_worker():
            raise RuntimeError("join() cannot be awaited from inside a queued job")
        await self._queue.join()

    async def close(self) -> None:
        """Run the jobs already queued, then stop the worker."""
        if self._closed:
            return
        self._closed = True

        if self._queue is None or self._worker is None:
            return

        self._queue.put_nowait(None)
        await self._worker
        self._worker = None
        logger.debug(f"Serial queue '{self.name}' stopped")

    def _ensure_started(self, operation: str) -> asyncio.Queue[_Job | None]:
        if self._closed:
            raise EngineClosedError(operation)
        if self._queue is not None:
            return self._queue

        queue: asyncio.Queue[_Job | None] = asyncio.Queue()
        self._queue = queue
        self._worker = asyncio.create_task(self._drain(queue), name=f"{self.name}-queue")
        logger.debug(f"Serial queue '{self.name}' started")
        return queue

    async def _drain(self, queue: asyncio.Queue[_Job | None]) -> None:
        while True:
            job = await queue.get()
            try:
                if job is None:
                    return
                await self._execute(job)
            finally:
                queue.task_done()

    async def _execute(self, job: _Job) -> None:
        try:
            result = await job.fn()
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # The job cancelled itself; the worker keeps draining
            if job.future is not None:
                job.future.cancel()
            else:
                logger.warning(f"Queued job was cancelled: {job.description}")
            return
        except Exception as e:
            if job.future is not None:
                if not job.future.done():
                    job.future.set_exception(e)
            else:
                logger.exception(f"Queued job failed: {job.description}")
            return

        if job.future is not None and not job.future.done():
            job.future.set_result(result)


def _describe(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)
