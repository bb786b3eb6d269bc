"""Poll primitives: Ready/Pending, WakeHandle and Context.

Every sink, stream and future in this package is driven by repeatedly
calling a ``poll_*`` method with a ``Context``. An operation that cannot
make progress returns ``Pending`` after storing ``cx.park()``; whoever later
makes progress possible calls ``notify()`` on that handle so the owning task
is polled again. Nothing ever blocks a thread.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass

__all__ = ['Context', 'Pending', 'PendingType', 'Poll', 'Ready', 'WakeHandle', 'next_task_id']


@dataclass(slots=True, frozen=True)
class Ready[T]:
    """The operation completed with ``value``."""

    value: T
    __match_args__ = ('value',)

    def is_ready(self) -> bool:
        return True

    def is_pending(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f'Ready({self.value!r})'


class PendingType:
    """The operation cannot make progress yet. Use the ``Pending`` singleton."""

    __slots__ = ()
    _instance: PendingType | None = None

    def __new__(cls) -> PendingType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def is_ready(self) -> bool:
        return False

    def is_pending(self) -> bool:
        return True

    def __repr__(self) -> str:
        return 'Pending'


Pending: PendingType = PendingType()
type Poll[T] = Ready[T] | PendingType

_task_ids = itertools.count(1)


def next_task_id() -> int:
    """Allocate a process-wide unique task id."""
    return next(_task_ids)


class WakeHandle:
    """Capability to re-schedule the execution context that parked it.

    Handles are cheap to copy around; two handles compare equal when they
    wake the same task.
    """

    __slots__ = ('_callback', '_task_id')

    def __init__(self, callback: Callable[[], None] | None = None, task_id: int | None = None) -> None:
        self._callback = callback
        self._task_id = task_id if task_id is not None else next_task_id()

    @property
    def task_id(self) -> int:
        return self._task_id

    def notify(self) -> None:
        """Ask for the owning task to be polled again."""
        if self._callback is not None:
            self._callback()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WakeHandle):
            return NotImplemented
        return self._task_id == other._task_id

    def __hash__(self) -> int:
        return hash(self._task_id)

    def __repr__(self) -> str:
        return f'WakeHandle(task={self._task_id})'


class Context:
    """Execution context handed to every poll call."""

    __slots__ = ('_handle',)

    def __init__(self, handle: WakeHandle) -> None:
        self._handle = handle

    @classmethod
    def from_callback(cls, callback: Callable[[], None]) -> Context:
        """Create a context whose wake handle runs ``callback`` on notify."""
        return cls(WakeHandle(callback))

    @classmethod
    def noop(cls) -> Context:
        """Create a context whose wake handle does nothing."""
        return cls(WakeHandle())

    def park(self) -> WakeHandle:
        """Return the wake handle of the currently running task."""
        return self._handle

    def __repr__(self) -> str:
        return f'Context({self._handle!r})'
