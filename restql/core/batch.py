"""Coalesces operations per key and flushes them by size or by timer.

Example:
    batcher = BatchManager(batch_interval=0.05, max_batch_size=10)
    result = await batcher.add("user", lambda: fetch_user(1))
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .errors import BatchCancelledError

Operation = Callable[[], Awaitable[Any]]


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Schedules a callback after a delay in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class _QueuedOperation:
    operation: Operation
    future: asyncio.Future


class BatchManager:
    """Per-key operation queues with size- and time-based flushing.

    A key's queue is flushed as soon as it holds `max_batch_size`
    operations. Otherwise one shared timer flushes every pending key after
    `batch_interval` seconds. Each operation resolves its own future, so a
    failure never leaks into sibling operations of the same batch.
    """

    def __init__(
        self,
        batch_interval: float = 0.05,
        max_batch_size: int | None = None,
        scheduler: Scheduler | None = None,
        logger: logging.Logger | None = None,
    ):
        self.batch_interval = batch_interval
        self.max_batch_size = max_batch_size
        self._scheduler = scheduler or LoopScheduler()
        self._queues: dict[str, list[_QueuedOperation]] = {}
        self._timer: TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._logger = logger or logging.getLogger(__name__)

    def add(self, key: str, operation: Operation) -> asyncio.Future:
        """Queue `operation` under `key` and return a future for its result."""
        future = asyncio.get_running_loop().create_future()
        queue = self._queues.setdefault(key, [])
        queue.append(_QueuedOperation(operation, future))

        if self.max_batch_size is not None and len(queue) >= self.max_batch_size:
            self._logger.debug("Batch for %s reached %d operation(s), flushing", key, len(queue))
            self._flush([key])
        elif self._timer is None:
            self._timer = self._scheduler.call_later(self.batch_interval, self._on_timer)
        return future

    def cancel(self, key: str):
        """Reject every queued, not yet flushed operation for `key`."""
        for queued in self._queues.pop(key, []):
            if not queued.future.done():
                queued.future.set_exception(BatchCancelledError(key))
        self._logger.debug("Cancelled batch for %s", key)
        if not self._queues:
            self._cancel_timer()

    def pending(self, key: str | None = None) -> int:
        """Number of queued operations, for one key or in total."""
        if key is not None:
            return len(self._queues.get(key, []))
        return sum(len(queue) for queue in self._queues.values())

    async def drain(self):
        """Wait until every flushed batch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_timer(self):
        self._timer = None
        self._flush(list(self._queues))

    def _flush(self, keys: list[str]):
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        for key in keys:
            operations = self._queues.pop(key, [])
            if not operations:
                continue
            task = loop.create_task(self._run_batch(key, operations))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._queues:
            self._timer = self._scheduler.call_later(self.batch_interval, self._on_timer)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run_batch(self, key: str, operations: list[_QueuedOperation]):
        self._logger.debug("Executing batch for %s with %d operation(s)", key, len(operations))
        try:
            await asyncio.gather(*(self._run_operation(queued) for queued in operations))
        except Exception:
            self._logger.exception("Batch execution error for key %s", key)

    async def _run_operation(self, queued: _QueuedOperation):
        if queued.future.done():
            return
        try:
            result = await queued.operation()
        except asyncio.CancelledError:
            queued.future.cancel()
            raise
        except Exception as e:
            if not queued.future.done():
                queued.future.set_exception(e)
        else:
            if not queued.future.done():
                queued.future.set_result(result)
