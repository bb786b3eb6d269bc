"""Sink, Stream and Future protocols for poll-based async code.

Uses PEP 695 type parameter syntax (Python 3.12+) for automatic variance inference.
Type checkers will infer:
- Sink[T, E] as contravariant in T (T appears in input positions)
- Stream[T, E] and Future[T, E] as covariant in T (output positions)

The wrappers and combinators of this package accept anything that
structurally implements these protocols, not only the test channel.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from klaw_testkit.poll import Context, Poll
    from klaw_testkit.result import Result

__all__ = ['Future', 'Sink', 'Stream']


@runtime_checkable
class Sink[T, E](Protocol):
    """Protocol for an asynchronous consumer of items.

    A sink accepts items one at a time and has an explicit flush and close
    lifecycle. Each operation may report ``Pending`` (after arranging for
    ``cx`` to be notified) or complete with ``Ok(None)`` / ``Err(error)``.

    Type Parameters:
        T: The type of items accepted by the sink.
        E: The type of errors reported by the sink.
    """

    @abstractmethod
    def start_send(self, cx: Context, item: T) -> Poll[Result[None, E]]:
        """Offer one item to the sink.

        ``Pending`` means the item was not accepted; it stays owned by the
        caller, who must offer it again after being notified.

        Example:
            ```python
            match sink.start_send(cx, item):
                case Ready(Ok(_)): print("accepted")
                case Ready(Err(e)): print(f"failed: {e!r}")
                case _: print("retry later")
            ```
        """
        ...

    @abstractmethod
    def poll_flush(self, cx: Context) -> Poll[Result[None, E]]:
        """Push every accepted item through to its destination."""
        ...

    @abstractmethod
    def poll_close(self, cx: Context) -> Poll[Result[None, E]]:
        """Flush and close the sink. No item may be sent afterwards."""
        ...


@runtime_checkable
class Stream[T, E](Protocol):
    """Protocol for an asynchronous producer of items.

    Type Parameters:
        T: The type of items produced.
        E: The type of errors produced.
    """

    @abstractmethod
    def poll_next(self, cx: Context) -> Poll[Result[T, E] | None]:
        """Poll for the next item.

        Returns:
            ``Ready(Ok(item))`` for an item, ``Ready(Err(error))`` for a
            failure, ``Ready(None)`` at end of sequence, or ``Pending``.
        """
        ...


@runtime_checkable
class Future[T, E](Protocol):
    """Protocol for a poll-based computation producing one result."""

    @abstractmethod
    def poll(self, cx: Context) -> Poll[Result[T, E]]:
        """Advance the computation.

        Polling again after a ``Ready`` result is a contract violation.
        """
        ...
