"""Executors for poll-based futures.

- ``LocalPool``: deterministic, single-threaded pool. Tasks are polled in
  the order they were woken; a task is only polled again after something
  notified its wake handle.
- ``block_on``: run one future on a fresh pool.
- ``drive``: await a poll-based future from asyncio/anyio code, so test
  channels can be shared between ordinary async tasks.
"""

from __future__ import annotations

import functools
from collections import deque
from typing import TYPE_CHECKING, Any

import aiologic
from anyio.lowlevel import checkpoint

from klaw_testkit._config import current_config
from klaw_testkit._logging import get_logger
from klaw_testkit.errors import Stalled
from klaw_testkit.poll import Context, Pending, WakeHandle, next_task_id

if TYPE_CHECKING:
    from klaw_testkit.protocols import Future
    from klaw_testkit.result import Result

__all__ = ['LocalPool', 'TaskHandle', 'block_on', 'drive']

_log = get_logger(__name__)


class TaskHandle[T, E]:
    """Handle to a future spawned on a ``LocalPool``."""

    __slots__ = ('_future', '_handle', '_result', 'polls')

    def __init__(self, future: Future[T, E], handle: WakeHandle) -> None:
        self._future: Future[T, E] | None = future
        self._handle = handle
        self._result: Result[T, E] | None = None
        self.polls = 0

    @property
    def task_id(self) -> int:
        return self._handle.task_id

    def is_done(self) -> bool:
        return self._future is None

    def result(self) -> Result[T, E]:
        """Get the result of the completed future.

        Raises:
            RuntimeError: If the future has not completed yet.
        """
        if self._result is None:
            msg = 'Task not yet complete. Run the pool first.'
            raise RuntimeError(msg)
        return self._result

    def __repr__(self) -> str:
        state = 'done' if self.is_done() else 'pending'
        return f'TaskHandle(task={self.task_id}, {state}, polls={self.polls})'


class LocalPool:
    """Single-threaded pool running poll-based futures deterministically.

    Finished tasks stay registered so that ``run()`` can return every result
    in spawn order. A pool is meant for one scenario; use a fresh one per
    test rather than keeping it alive across many.

    Example:
        ```python
        pool = LocalPool()
        sending = pool.spawn(send_close(tx, Ok(1)))
        receiving = pool.spawn(collect(rx))
        pool.run()
        assert receiving.result() == Ok([1])
        ```
    """

    def __init__(self, max_polls: int | None = None) -> None:
        self._max_polls = max_polls if max_polls is not None else current_config().max_polls
        self._tasks: dict[int, TaskHandle[Any, Any]] = {}
        self._ready: deque[int] = deque()
        self._queued: set[int] = set()
        self.polls = 0

    def spawn[T, E](self, future: Future[T, E]) -> TaskHandle[T, E]:
        """Add a future to the pool. It is polled on the next run."""
        task_id = next_task_id()
        handle = WakeHandle(functools.partial(self._wake, task_id), task_id=task_id)
        task: TaskHandle[T, E] = TaskHandle(future, handle)
        self._tasks[task.task_id] = task
        self._wake(task.task_id)
        return task

    def _wake(self, task_id: int) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.is_done() or task_id in self._queued:
            return
        self._queued.add(task_id)
        self._ready.append(task_id)

    def pending_tasks(self) -> list[TaskHandle[Any, Any]]:
        """Return the spawned tasks that have not completed."""
        return [task for task in self._tasks.values() if not task.is_done()]

    def run_until_stalled(self) -> bool:
        """Poll woken tasks until none is left to poll.

        Returns:
            True if every spawned task completed.

        Raises:
            StalledError: If the poll budget is used up.
        """
        while self._ready:
            task_id = self._ready.popleft()
            self._queued.discard(task_id)
            task = self._tasks[task_id]
            future = task._future
            if future is None:
                continue

            if self.polls >= self._max_polls:
                _log.debug('poll budget exhausted', polls=self.polls, task=task_id)
                raise Stalled(self.polls, budget_exhausted=True).to_exception()
            self.polls += 1
            task.polls += 1

            polled = future.poll(Context(task._handle))
            if polled is Pending:
                continue
            task._future = None
            task._result = polled.value

        return not self.pending_tasks()

    def run(self) -> list[Result[Any, Any]]:
        """Run every spawned task to completion.

        Returns:
            The results of all spawned tasks, in spawn order.

        Raises:
            StalledError: If a task is pending but was never woken, or the
                poll budget is used up.
        """
        if not self.run_until_stalled():
            stalled = [task.task_id for task in self.pending_tasks()]
            _log.debug('pool stalled', polls=self.polls, tasks=stalled)
            raise Stalled(self.polls).to_exception()
        return [task.result() for task in self._tasks.values()]


def block_on[T, E](future: Future[T, E], *, max_polls: int | None = None) -> Result[T, E]:
    """Run a future to completion on the current thread.

    Args:
        future: The future to run.
        max_polls: Poll budget. Defaults to the harness config.

    Returns:
        The future's result, ``Ok(value)`` or ``Err(error)``.

    Raises:
        StalledError: If the future is pending and nothing will wake it, or
            the poll budget is used up.

    Example:
        ```python
        tx, rx = test_channel(1)
        assert block_on(send_close(tx, Ok(1))).is_ok()
        ```
    """
    pool = LocalPool(max_polls)
    task = pool.spawn(future)
    pool.run()
    return task.result()


async def drive[T, E](future: Future[T, E], *, max_polls: int | None = None) -> Result[T, E]:
    """Await a poll-based future from async code.

    Each time the future is pending, the calling task sleeps until the
    future's wake handle is notified, which may happen from another task
    (for example the other end of a test channel).

    Args:
        future: The future to run.
        max_polls: Poll budget. Defaults to the harness config.

    Raises:
        StalledError: If the poll budget is used up.
        ContractViolationError: If the future was already completed.
    """
    budget = max_polls if max_polls is not None else current_config().max_polls

    def wake() -> None:
        woken.set()

    cx = Context(WakeHandle(wake))
    polls = 0
    while True:
        if polls >= budget:
            raise Stalled(polls, budget_exhausted=True).to_exception()
        polls += 1
        woken = aiologic.Event()
        polled = future.poll(cx)
        if polled is not Pending:
            return polled.value

        if woken.is_set():
            await checkpoint()
        else:
            await woken
