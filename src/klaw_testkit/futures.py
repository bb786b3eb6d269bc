"""Futures for working with sinks and streams.

- ``Close``: close a sink.
- ``Flush``: flush a sink.
- ``Send``: send one item, then flush.
- ``SendClose``: send one item, then close.
- ``Forward``: move every item of a stream into a sink, leaving it open.
- ``SendAll``: forward a finite iterable, then flush or close.
- ``Next`` / ``Collect``: read one / all items of a stream.
- ``Join``: run several futures to completion.

Every future surfaces the first error it observes as ``Ready(Err(error))``
and stops there. Polling a future again after it returned ``Ready``, or
accessing a sink it already handed back, is a contract violation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Final

from klaw_testkit._logging import get_logger
from klaw_testkit.errors import ContractViolation
from klaw_testkit.poll import Pending, Ready
from klaw_testkit.result import Err, Ok
from klaw_testkit.stream import Fuse, iter_ok

if TYPE_CHECKING:
    from klaw_testkit.poll import Context, Poll
    from klaw_testkit.protocols import Future, Sink, Stream
    from klaw_testkit.result import Result

__all__ = [
    'Close',
    'Collect',
    'Flush',
    'Forward',
    'Join',
    'Next',
    'Send',
    'SendAll',
    'SendClose',
    'close',
    'collect',
    'flush',
    'forward',
    'join',
    'next_item',
    'send',
    'send_all',
    'send_close',
]

_log = get_logger(__name__)


def _after_completion(what: str, operation: str) -> Exception:
    return ContractViolation(f'Attempted {what}.{operation} after completion').to_exception()


class _Empty:
    __slots__ = ()

    def __repr__(self) -> str:
        return '<empty>'


_EMPTY: Final = _Empty()


class Close[S, E]:
    """Future which closes a sink and then yields it back."""

    __slots__ = ('_sink',)

    def __init__(self, sink: Sink[Any, E]) -> None:
        self._sink: Sink[Any, E] | None = sink

    def get_ref(self) -> Sink[Any, E]:
        """Get a reference to the inner sink."""
        if self._sink is None:
            raise _after_completion('Close', 'get_ref')
        return self._sink

    def get_mut(self) -> Sink[Any, E]:
        """Get a mutable reference to the inner sink."""
        if self._sink is None:
            raise _after_completion('Close', 'get_mut')
        return self._sink

    def into_inner(self) -> Sink[Any, E]:
        """Abandon the future, returning the inner sink."""
        if self._sink is None:
            raise _after_completion('Close', 'into_inner')
        sink, self._sink = self._sink, None
        return sink

    def poll(self, cx: Context) -> Poll[Result[Sink[Any, E], E]]:
        sink = self._sink
        if sink is None:
            raise ContractViolation('Attempted to poll Close after completion').to_exception()

        polled = sink.poll_close(cx)
        if polled is Pending:
            return Pending
        self._sink = None
        match polled.value:
            case Err() as err:
                _log.debug('close failed', error=err.error)
                return Ready(err)
            case _:
                return Ready(Ok(sink))


class Flush[S, E]:
    """Future which flushes a sink and then yields it back."""

    __slots__ = ('_sink',)

    def __init__(self, sink: Sink[Any, E]) -> None:
        self._sink: Sink[Any, E] | None = sink

    def get_ref(self) -> Sink[Any, E]:
        if self._sink is None:
            raise _after_completion('Flush', 'get_ref')
        return self._sink

    def get_mut(self) -> Sink[Any, E]:
        if self._sink is None:
            raise _after_completion('Flush', 'get_mut')
        return self._sink

    def into_inner(self) -> Sink[Any, E]:
        if self._sink is None:
            raise _after_completion('Flush', 'into_inner')
        sink, self._sink = self._sink, None
        return sink

    def poll(self, cx: Context) -> Poll[Result[Sink[Any, E], E]]:
        sink = self._sink
        if sink is None:
            raise ContractViolation('Attempted to poll Flush after completion').to_exception()

        polled = sink.poll_flush(cx)
        if polled is Pending:
            return Pending
        self._sink = None
        match polled.value:
            case Err() as err:
                return Ready(err)
            case _:
                return Ready(Ok(sink))


class Send[T, E]:
    """Future which sends one item into a sink and flushes it.

    The item is offered until the sink accepts it, then the sink is flushed
    until it reports completion.
    """

    __slots__ = ('_item', '_sink')

    def __init__(self, sink: Sink[T, E], item: T) -> None:
        self._sink: Sink[T, E] | None = sink
        self._item: T | _Empty = item

    def get_ref(self) -> Sink[T, E]:
        if self._sink is None:
            raise _after_completion('Send', 'get_ref')
        return self._sink

    def get_mut(self) -> Sink[T, E]:
        if self._sink is None:
            raise _after_completion('Send', 'get_mut')
        return self._sink

    def into_inner(self) -> Sink[T, E]:
        """Abandon the future, returning the sink. An unsent item is dropped."""
        if self._sink is None:
            raise _after_completion('Send', 'into_inner')
        sink, self._sink = self._sink, None
        self._item = _EMPTY
        return sink

    def poll(self, cx: Context) -> Poll[Result[Sink[T, E], E]]:
        sink = self._sink
        if sink is None:
            raise ContractViolation('Attempted to poll Send after completion').to_exception()

        if self._item is not _EMPTY:
            polled = sink.start_send(cx, self._item)
            if polled is Pending:
                return Pending
            if isinstance(polled.value, Err):
                self._sink = None
                return Ready(polled.value)
            self._item = _EMPTY

        polled = sink.poll_flush(cx)
        if polled is Pending:
            return Pending
        self._sink = None
        if isinstance(polled.value, Err):
            return Ready(polled.value)
        return Ready(Ok(sink))


class SendClose[T, E]:
    """Future which sends a value down a sink and then closes it.

    Completes with the closed sink. A failure while sending ends the future
    without attempting to close.
    """

    __slots__ = ('_close', '_send')

    def __init__(self, sink: Sink[T, E], item: T) -> None:
        self._send: Send[T, E] | None = Send(sink, item)
        self._close: Close[T, E] | None = None

    def _active(self, operation: str) -> Send[T, E] | Close[T, E]:
        active = self._send or self._close
        if active is None:
            raise _after_completion('SendClose', operation)
        return active

    def get_ref(self) -> Sink[T, E]:
        return self._active('get_ref').get_ref()

    def get_mut(self) -> Sink[T, E]:
        return self._active('get_mut').get_mut()

    def into_inner(self) -> Sink[T, E]:
        sink = self._active('into_inner').into_inner()
        self._send = self._close = None
        return sink

    def poll(self, cx: Context) -> Poll[Result[Sink[T, E], E]]:
        if self._send is not None:
            polled = self._send.poll(cx)
            if polled is Pending:
                return Pending
            self._send = None
            match polled.value:
                case Ok(sink):
                    self._close = Close(sink)
                case err:
                    _log.debug('send_close failed while sending', error=err.error)
                    return Ready(err)

        if self._close is None:
            raise ContractViolation('Attempted to poll SendClose after completion').to_exception()
        polled = self._close.poll(cx)
        if polled is Pending:
            return Pending
        self._close = None
        return polled


class Forward[T, E]:
    """Future which drives every item of a stream into a sink, without closing it.

    At most one item is held back, when the sink does not accept it yet.
    When the stream has nothing to offer, the sink is flushed so that its
    errors surface and accepted items move on. Completes with
    ``Ok((sink, stream))`` once the stream ends; the stream is returned
    fused, so polling it again keeps reporting the end.

    A stream failure is reported as the future's own failure, so the sink's
    error type must be able to represent the stream's.
    """

    __slots__ = ('_buffered', '_sink', '_stream')

    def __init__(self, stream: Stream[T, E], sink: Sink[T, E]) -> None:
        self._sink: Sink[T, E] | None = sink
        self._stream: Fuse[T, E] | None = Fuse(stream)
        self._buffered: T | _Empty = _EMPTY

    def get_ref(self) -> Sink[T, E]:
        """Get a reference to the sink being fed."""
        if self._sink is None:
            raise _after_completion('Forward', 'get_ref')
        return self._sink

    def get_mut(self) -> Sink[T, E]:
        """Get a mutable reference to the sink being fed."""
        if self._sink is None:
            raise _after_completion('Forward', 'get_mut')
        return self._sink

    def get_stream(self) -> Stream[T, E]:
        """Get a reference to the stream being drained."""
        if self._stream is None:
            raise _after_completion('Forward', 'get_stream')
        return self._stream.get_ref()

    def into_inner(self) -> tuple[Sink[T, E], Fuse[T, E]]:
        """Abandon the future, returning the sink and the fused stream.

        A held back item is dropped.
        """
        if self._sink is None or self._stream is None:
            raise _after_completion('Forward', 'into_inner')
        parts = (self._sink, self._stream)
        self._release()
        return parts

    def has_buffered(self) -> bool:
        """Return True while an item waits to be accepted by the sink."""
        return self._buffered is not _EMPTY

    def _release(self) -> None:
        self._sink = None
        self._stream = None
        self._buffered = _EMPTY

    def _fail(self, err: Err[E]) -> Poll[Result[Any, E]]:
        _log.debug('forward failed', error=err.error)
        self._release()
        return Ready(err)

    def _try_start_send(self, cx: Context, sink: Sink[T, E], item: T) -> Poll[Result[None, E]]:
        polled = sink.start_send(cx, item)
        if polled is Pending:
            self._buffered = item
        return polled

    def poll(self, cx: Context) -> Poll[Result[tuple[Sink[T, E], Fuse[T, E]], E]]:
        sink, stream = self._sink, self._stream
        if sink is None or stream is None:
            raise ContractViolation('Attempted to poll Forward after completion').to_exception()

        if self._buffered is not _EMPTY:
            item, self._buffered = self._buffered, _EMPTY
            polled = self._try_start_send(cx, sink, item)
            if polled is Pending:
                return Pending
            if isinstance(polled.value, Err):
                return self._fail(polled.value)

        while True:
            match stream.poll_next(cx):
                case Ready(None):
                    self._release()
                    _log.debug('forward complete')
                    return Ready(Ok((sink, stream)))
                case Ready(Ok(item)):
                    polled = self._try_start_send(cx, sink, item)
                    if polled is Pending:
                        return Pending
                    if isinstance(polled.value, Err):
                        return self._fail(polled.value)
                case Ready(Err() as err):
                    return self._fail(err)
                case _:
                    flushed = sink.poll_flush(cx)
                    if flushed is not Pending and isinstance(flushed.value, Err):
                        return self._fail(flushed.value)
                    return Pending


class SendAll[T, E]:
    """Future which sends every element of an iterable, then flushes or closes the sink."""

    __slots__ = ('_close', '_forward', '_tail')

    def __init__(self, sink: Sink[T, E], items: Iterable[T], *, close: bool = False) -> None:
        self._forward: Forward[T, E] | None = Forward(iter_ok(items), sink)
        self._tail: Flush[T, E] | Close[T, E] | None = None
        self._close = close

    def poll(self, cx: Context) -> Poll[Result[Sink[T, E], E]]:
        if self._forward is not None:
            polled = self._forward.poll(cx)
            if polled is Pending:
                return Pending
            self._forward = None
            match polled.value:
                case Ok((sink, _)):
                    self._tail = Close(sink) if self._close else Flush(sink)
                case err:
                    return Ready(err)

        if self._tail is None:
            raise ContractViolation('Attempted to poll SendAll after completion').to_exception()
        polled = self._tail.poll(cx)
        if polled is Pending:
            return Pending
        self._tail = None
        return polled


class Next[T, E]:
    """Future resolving to the next entry of a stream, or None at its end.

    Completes with ``Ok(Ok(item))``, ``Ok(Err(error))`` or ``Ok(None)``:
    stream failures are data here, not failures of the future.
    """

    __slots__ = ('_done', '_stream')

    def __init__(self, stream: Stream[T, E]) -> None:
        self._stream = stream
        self._done = False

    def poll(self, cx: Context) -> Poll[Result[Result[T, E] | None, Any]]:
        if self._done:
            raise ContractViolation('Attempted to poll Next after completion').to_exception()
        polled = self._stream.poll_next(cx)
        if polled is Pending:
            return Pending
        self._done = True
        return Ready(Ok(polled.value))


class Collect[T, E]:
    """Future collecting a stream into a list.

    By default the first stream failure fails the future. With
    ``errors=True`` every entry is kept as ``Ok(item)`` / ``Err(error)``
    and collection continues until the end of the stream.
    """

    __slots__ = ('_done', '_errors', '_items', '_stream')

    def __init__(self, stream: Stream[T, E], *, errors: bool = False) -> None:
        self._stream = stream
        self._errors = errors
        self._items: list[Any] = []
        self._done = False

    def poll(self, cx: Context) -> Poll[Result[list[Any], E]]:
        if self._done:
            raise ContractViolation('Attempted to poll Collect after completion').to_exception()

        while True:
            match self._stream.poll_next(cx):
                case Ready(None):
                    self._done = True
                    items, self._items = self._items, []
                    return Ready(Ok(items))
                case Ready(Ok(item) as entry):
                    self._items.append(entry if self._errors else item)
                case Ready(Err() as err):
                    if not self._errors:
                        self._done = True
                        return Ready(err)
                    self._items.append(err)
                case _:
                    return Pending


class Join:
    """Future polling several futures until all complete.

    Completes with ``Ok(tuple_of_values)`` in argument order, or with the
    first ``Err`` observed; the remaining futures are then abandoned.
    """

    __slots__ = ('_done', '_futures', '_results')

    def __init__(self, *futures: Future[Any, Any]) -> None:
        self._futures: list[Future[Any, Any] | None] = list(futures)
        self._results: list[Any] = [_EMPTY] * len(futures)
        self._done = False

    def poll(self, cx: Context) -> Poll[Result[tuple[Any, ...], Any]]:
        if self._done:
            raise ContractViolation('Attempted to poll Join after completion').to_exception()

        for index, future in enumerate(self._futures):
            if future is None:
                continue
            polled = future.poll(cx)
            if polled is Pending:
                continue
            self._futures[index] = None
            if isinstance(polled.value, Err):
                self._done = True
                self._futures = [None] * len(self._futures)
                return Ready(polled.value)
            self._results[index] = polled.value.value

        if any(future is not None for future in self._futures):
            return Pending
        self._done = True
        return Ready(Ok(tuple(self._results)))


def close[E](sink: Sink[Any, E]) -> Close[Any, E]:
    """Create a future closing ``sink``."""
    return Close(sink)


def flush[E](sink: Sink[Any, E]) -> Flush[Any, E]:
    """Create a future flushing ``sink``."""
    return Flush(sink)


def send[T, E](sink: Sink[T, E], item: T) -> Send[T, E]:
    """Create a future sending ``item`` into ``sink``."""
    return Send(sink, item)


def send_close[T, E](sink: Sink[T, E], item: T) -> SendClose[T, E]:
    """Create a future sending ``item`` into ``sink`` and closing it."""
    return SendClose(sink, item)


def forward[T, E](stream: Stream[T, E], sink: Sink[T, E]) -> Forward[T, E]:
    """Create a future forwarding ``stream`` into ``sink`` without closing it."""
    return Forward(stream, sink)


def send_all[T, E](sink: Sink[T, E], items: Iterable[T], *, close: bool = False) -> SendAll[T, E]:
    """Create a future sending every element of ``items`` into ``sink``."""
    return SendAll(sink, items, close=close)


def next_item[T, E](stream: Stream[T, E]) -> Next[T, E]:
    """Create a future resolving to the next entry of ``stream``."""
    return Next(stream)


def collect[T, E](stream: Stream[T, E], *, errors: bool = False) -> Collect[T, E]:
    """Create a future collecting ``stream`` into a list."""
    return Collect(stream, errors=errors)


def join(*futures: Future[Any, Any]) -> Join:
    """Create a future running ``futures`` side by side."""
    return Join(*futures)
