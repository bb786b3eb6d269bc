"""Stream wrappers: fault-injecting TestStream, Fuse, and iterable sources."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

import wrapt

from klaw_testkit._logging import get_logger
from klaw_testkit.directives import Delegate, DirectiveScript, Fail, NotReady
from klaw_testkit.poll import Pending, Ready
from klaw_testkit.result import Err, Ok

if TYPE_CHECKING:
    from klaw_testkit.directives import PollOp
    from klaw_testkit.poll import Context, Poll
    from klaw_testkit.protocols import Stream
    from klaw_testkit.result import Result

__all__ = ['Fuse', 'IterOk', 'IterResults', 'TestStream', 'iter_ok', 'iter_results']

_log = get_logger(__name__)


class TestStream[T, E](wrapt.ObjectProxy):
    """A stream wrapper that alters ``poll_next`` according to a script.

    Everything except ``poll_next`` is forwarded untouched to the wrapped
    object, so wrapping something that is both a stream and a sink keeps
    its sink side working.

    Example:
        ```python
        stream = TestStream(rx, [NotReady(), Delegate(), Fail('boom')])
        ```
    """

    __test__ = False

    def __init__(self, inner: Stream[T, E], poll_ops: Iterable[PollOp[E]] = ()) -> None:
        super().__init__(inner)
        self._self_poll_ops: DirectiveScript[E] = DirectiveScript(poll_ops)

    def set_poll_ops(self, poll_ops: Iterable[PollOp[E]]) -> TestStream[T, E]:
        """Replace the script for subsequent ``poll_next`` calls."""
        self._self_poll_ops = DirectiveScript(poll_ops)
        return self

    @property
    def poll_ops(self) -> DirectiveScript[E]:
        return self._self_poll_ops

    def get_ref(self) -> Stream[T, E]:
        """Acquire a reference to the wrapped stream."""
        return self.__wrapped__

    def get_mut(self) -> Stream[T, E]:
        """Acquire a mutable reference to the wrapped stream."""
        return self.__wrapped__

    def into_inner(self) -> Stream[T, E]:
        """Give up the wrapper, returning the wrapped stream."""
        return self.__wrapped__

    def poll_next(self, cx: Context) -> Poll[Result[T, E] | None]:
        match self._self_poll_ops.next_op():
            case NotReady():
                _log.debug('directive applied', operation='poll_next', directive='not_ready')
                cx.park().notify()
                return Pending
            case Fail(error=error):
                _log.debug('directive applied', operation='poll_next', directive='fail', error=error)
                return Ready(Err(error))
            case Delegate():
                return self.__wrapped__.poll_next(cx)

    def __repr__(self) -> str:
        return f'TestStream({self.__wrapped__!r}, {self._self_poll_ops!r})'


class Fuse[T, E]:
    """Stream that keeps reporting the end once its inner stream ended.

    The inner stream is never polled again after it returned
    ``Ready(None)``.
    """

    __slots__ = ('_done', '_stream')

    def __init__(self, stream: Stream[T, E]) -> None:
        self._stream = stream
        self._done = False

    def is_done(self) -> bool:
        return self._done

    def get_ref(self) -> Stream[T, E]:
        return self._stream

    def get_mut(self) -> Stream[T, E]:
        return self._stream

    def into_inner(self) -> Stream[T, E]:
        return self._stream

    def poll_next(self, cx: Context) -> Poll[Result[T, E] | None]:
        if self._done:
            return Ready(None)
        polled = self._stream.poll_next(cx)
        if polled == Ready(None):
            self._done = True
        return polled

    def __repr__(self) -> str:
        return f'Fuse({self._stream!r}, done={self._done})'


class IterOk[T]:
    """Stream yielding every element of an iterable as an item, never pending."""

    __slots__ = ('_items',)

    def __init__(self, items: Iterable[T]) -> None:
        self._items: Iterator[T] = iter(items)

    def poll_next(self, cx: Context) -> Poll[Result[T, Any] | None]:
        try:
            item = next(self._items)
        except StopIteration:
            return Ready(None)
        return Ready(Ok(item))


class IterResults[T, E]:
    """Stream yielding ``Ok``/``Err`` elements of an iterable as items and failures."""

    __slots__ = ('_results',)

    def __init__(self, results: Iterable[Result[T, E]]) -> None:
        self._results: Iterator[Result[T, E]] = iter(results)

    def poll_next(self, cx: Context) -> Poll[Result[T, E] | None]:
        try:
            result = next(self._results)
        except StopIteration:
            return Ready(None)
        return Ready(result)


def iter_ok[T](items: Iterable[T]) -> IterOk[T]:
    """Create a stream of ``items`` that never fails."""
    return IterOk(items)


def iter_results[T, E](results: Iterable[Result[T, E]]) -> IterResults[T, E]:
    """Create a stream replaying ``Ok(item)`` and ``Err(error)`` elements."""
    return IterResults(results)
