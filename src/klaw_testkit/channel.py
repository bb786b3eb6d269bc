"""In-memory test channel: bounded, single-producer single-consumer.

The sender is a ``Sink`` of ``Ok(item)`` / ``Err(error)`` entries and the
receiver a ``Stream`` yielding them back in order, so a test can feed any
interleaving of items and failures to the code under test. An additional
out-of-band error can be injected with ``TestSender.inject_error``.

Both handles share one ``_ChannelCore``. There is a single wake slot: the
most recently parked side is remembered and the previous one is silently
replaced, which is enough for one producer and one consumer.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Any, Final

from klaw_testkit._logging import get_logger
from klaw_testkit.errors import ContractViolation
from klaw_testkit.poll import Pending, Ready
from klaw_testkit.result import Err, Ok

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from klaw_testkit.poll import Context, Poll, WakeHandle
    from klaw_testkit.result import Result

__all__ = ['TestReceiver', 'TestSender', 'test_channel']

_log = get_logger(__name__)


class _NoError:
    __slots__ = ()

    def __repr__(self) -> str:
        return '<no error>'


_NO_ERROR: Final = _NoError()


class _ChannelCore[I, E]:
    """Shared mutable state for a test sender/receiver pair."""

    __slots__ = (
        'capacity',
        'end_of_stream',
        'pending_error',
        'queue',
        'receiver_alive',
        'waiter',
    )

    def __init__(self, capacity: int) -> None:
        self.capacity: int = capacity
        self.queue: deque[Result[I, E]] = deque()
        self.end_of_stream: bool = False
        self.pending_error: E | _NoError = _NO_ERROR
        self.waiter: WakeHandle | None = None
        self.receiver_alive: bool = True

    def park(self, cx: Context, side: str) -> None:
        """Remember the calling task as the single waiter."""
        handle = cx.park()
        if self.waiter is not None and self.waiter != handle:
            _log.debug('channel waiter replaced', side=side, previous=self.waiter.task_id, task=handle.task_id)
        self.waiter = handle

    def wake(self) -> None:
        """Notify and forget the stored waiter, if any."""
        waiter, self.waiter = self.waiter, None
        if waiter is not None:
            waiter.notify()


class TestSender[I, E]:
    """Transmit half of a test channel.

    A ``Sink[Result[I, E], Never]``: it never fails by itself. Entries are
    ``Ok(item)`` for items and ``Err(error)`` for failures the receiver
    should observe at that position.

    Closing the sender (explicitly, by leaving a ``with`` block, or by
    garbage collection of the handle) marks the end of the stream.
    """

    __test__ = False

    def __init__(self, core: _ChannelCore[I, E]) -> None:
        self._core = core
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._core.capacity

    @property
    def queued(self) -> int:
        """Number of entries waiting for the receiver."""
        return len(self._core.queue)

    def is_closed(self) -> bool:
        """Return True once the sender has been closed or disposed."""
        return self._closed

    def start_send(self, cx: Context, item: Result[I, E]) -> Poll[Result[None, Any]]:
        """Offer an entry to the channel.

        Returns ``Pending`` (entry not consumed, ``cx`` parked) when the queue
        is at capacity, ``Ready(Ok(None))`` otherwise.

        Raises:
            ContractViolationError: If the sender is closed, the receiver is
                gone, or the entry is neither ``Ok`` nor ``Err``.
        """
        if self._closed:
            raise ContractViolation('TestSender used after close').to_exception()
        if not isinstance(item, Ok | Err):
            raise ContractViolation(f'TestSender entries must be Ok or Err, got {item!r}').to_exception()

        core = self._core
        if not core.receiver_alive:
            raise ContractViolation('TestSender used after the receiver was dropped').to_exception()
        if len(core.queue) >= core.capacity:
            core.park(cx, 'sender')
            return Pending

        core.queue.append(item)
        core.wake()
        return Ready(Ok(None))

    offer = start_send

    def poll_flush(self, cx: Context) -> Poll[Result[None, Any]]:
        """Always complete: the queue is the only buffer."""
        return Ready(Ok(None))

    def poll_close(self, cx: Context) -> Poll[Result[None, Any]]:
        """Mark the end of the stream and wake the receiver."""
        self.close()
        return Ready(Ok(None))

    def close(self) -> None:
        """Mark the end of the stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        core = self._core
        core.end_of_stream = True
        core.wake()

    def inject_error(self, error: E) -> None:
        """Make the receiver fail with ``error`` once the queue is drained.

        A still undelivered injected error is replaced.
        """
        core = self._core
        if core.pending_error is not _NO_ERROR:
            _log.debug('pending error replaced', previous=core.pending_error, error=error)
        core.pending_error = error
        core.wake()

    async def send(self, item: Result[I, E]) -> None:
        """Send an entry, waiting while the channel is full."""
        from klaw_testkit.executor import drive
        from klaw_testkit.futures import Send

        (await drive(Send(self, item))).unwrap()

    def __enter__(self) -> TestSender[I, E]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, '_closed', True):
            self.close()

    def __repr__(self) -> str:
        return f'TestSender(capacity={self._core.capacity}, queued={len(self._core.queue)}, closed={self._closed})'


class TestReceiver[I, E]:
    """Receive half of a test channel.

    A ``Stream[I, E]``: queued ``Ok(item)`` entries are yielded as items and
    ``Err(error)`` entries as failures, in the order they were sent. Once the
    queue is drained an injected error is delivered before the end of the
    stream is reported.
    """

    __test__ = False

    def __init__(self, core: _ChannelCore[I, E]) -> None:
        self._core = core
        self._closed = False

    def poll_next(self, cx: Context) -> Poll[Result[I, E] | None]:
        """Poll for the next entry.

        Raises:
            ContractViolationError: If the receiver was closed.
        """
        if self._closed:
            raise ContractViolation('TestReceiver used after close').to_exception()

        core = self._core
        if core.queue:
            entry = core.queue.popleft()
            core.wake()
            return Ready(entry)
        if core.pending_error is not _NO_ERROR:
            error, core.pending_error = core.pending_error, _NO_ERROR
            core.wake()
            return Ready(Err(error))
        if core.end_of_stream:
            return Ready(None)

        core.park(cx, 'receiver')
        return Pending

    def close(self) -> None:
        """Stop consuming and wake a sender that may be waiting for space.

        Queued entries are left in place; the woken sender fails on its next
        ``start_send``.
        """
        if self._closed:
            return
        self._closed = True
        core = self._core
        core.receiver_alive = False
        core.wake()

    async def recv(self) -> Result[I, E] | None:
        """Receive the next entry, or None at the end of the stream."""
        from klaw_testkit.executor import drive
        from klaw_testkit.futures import Next

        return (await drive(Next(self))).unwrap()

    def __aiter__(self) -> AsyncIterator[Result[I, E]]:
        """Iterate over entries until the end of the stream."""
        return self

    async def __anext__(self) -> Result[I, E]:
        entry = await self.recv()
        if entry is None:
            raise StopAsyncIteration
        return entry

    def __enter__(self) -> TestReceiver[I, E]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, '_closed', True):
            self.close()

    def __repr__(self) -> str:
        core = self._core
        return f'TestReceiver(queued={len(core.queue)}, end_of_stream={core.end_of_stream})'


def test_channel[I, E](capacity: int) -> tuple[TestSender[I, E], TestReceiver[I, E]]:
    """Create a test channel holding at most ``capacity`` entries.

    Args:
        capacity: Maximum number of queued entries. Must be at least 1.

    Returns:
        Tuple of (TestSender, TestReceiver).

    Raises:
        ContractViolationError: If capacity is not a positive integer.

    Example:
        ```python
        tx, rx = test_channel(2)
        cx = Context.noop()
        tx.start_send(cx, Ok(1))
        tx.close()
        assert rx.poll_next(cx) == Ready(Ok(1))
        assert rx.poll_next(cx) == Ready(None)
        ```
    """
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
        raise ContractViolation(f'TestChannel must have capacity greater than 0, got {capacity!r}').to_exception()
    core: _ChannelCore[I, E] = _ChannelCore(capacity)
    return TestSender(core), TestReceiver(core)


test_channel.__test__ = False  # type: ignore[attr-defined]
