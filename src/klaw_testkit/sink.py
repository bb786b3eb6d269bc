"""Fault-injecting sink wrapper, to test stalls and errors."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import wrapt

from klaw_testkit._logging import get_logger
from klaw_testkit.directives import Delegate, DirectiveScript, Fail, NotReady
from klaw_testkit.poll import Pending, Ready
from klaw_testkit.result import Err

if TYPE_CHECKING:
    from klaw_testkit.directives import Directive, FlushOp, SendOp
    from klaw_testkit.poll import Context, Poll
    from klaw_testkit.protocols import Sink
    from klaw_testkit.result import Result

__all__ = ['TestSink']

_log = get_logger(__name__)


class TestSink[T, E](wrapt.ObjectProxy):
    """A sink wrapper that alters ``start_send`` and ``poll_flush`` according to scripts.

    Each call to ``start_send`` consumes one directive from ``send_ops`` and
    each call to ``poll_flush`` one from ``flush_ops``. ``poll_close`` always
    delegates. Every other attribute, including ``poll_next`` of a wrapped
    object that is also a stream, is forwarded untouched.

    Example:
        ```python
        sink = TestSink(tx, send_ops=[NotReady(), Delegate(), Fail('full')])
        ```
    """

    __test__ = False

    def __init__(
        self,
        inner: Sink[T, E],
        send_ops: Iterable[SendOp[E]] = (),
        flush_ops: Iterable[FlushOp[E]] = (),
    ) -> None:
        super().__init__(inner)
        self._self_send_ops: DirectiveScript[E] = DirectiveScript(send_ops)
        self._self_flush_ops: DirectiveScript[E] = DirectiveScript(flush_ops)

    def set_send_ops(self, send_ops: Iterable[SendOp[E]]) -> TestSink[T, E]:
        """Replace the script for subsequent ``start_send`` calls."""
        self._self_send_ops = DirectiveScript(send_ops)
        return self

    def set_flush_ops(self, flush_ops: Iterable[FlushOp[E]]) -> TestSink[T, E]:
        """Replace the script for subsequent ``poll_flush`` calls."""
        self._self_flush_ops = DirectiveScript(flush_ops)
        return self

    @property
    def send_ops(self) -> DirectiveScript[E]:
        return self._self_send_ops

    @property
    def flush_ops(self) -> DirectiveScript[E]:
        return self._self_flush_ops

    def get_ref(self) -> Sink[T, E]:
        """Acquire a reference to the wrapped sink."""
        return self.__wrapped__

    def get_mut(self) -> Sink[T, E]:
        """Acquire a mutable reference to the wrapped sink."""
        return self.__wrapped__

    def into_inner(self) -> Sink[T, E]:
        """Give up the wrapper, returning the wrapped sink."""
        return self.__wrapped__

    def start_send(self, cx: Context, item: T) -> Poll[Result[None, E]]:
        scripted = _apply(self._self_send_ops.next_op(), cx, 'start_send')
        if scripted is None:
            return self.__wrapped__.start_send(cx, item)
        return scripted

    def poll_flush(self, cx: Context) -> Poll[Result[None, E]]:
        scripted = _apply(self._self_flush_ops.next_op(), cx, 'poll_flush')
        if scripted is None:
            return self.__wrapped__.poll_flush(cx)
        return scripted

    def poll_close(self, cx: Context) -> Poll[Result[None, E]]:
        return self.__wrapped__.poll_close(cx)

    def __repr__(self) -> str:
        return f'TestSink({self.__wrapped__!r}, send={self._self_send_ops!r}, flush={self._self_flush_ops!r})'


def _apply[E](op: Directive[E], cx: Context, operation: str) -> Poll[Result[None, E]] | None:
    """Turn a directive into a scripted outcome, or None to delegate."""
    match op:
        case NotReady():
            _log.debug('directive applied', operation=operation, directive='not_ready')
            cx.park().notify()
            return Pending
        case Fail(error=error):
            _log.debug('directive applied', operation=operation, directive='fail', error=error)
            return Ready(Err(error))
        case Delegate():
            return None
