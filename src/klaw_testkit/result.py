"""Rust-like Result for poll outcomes.

Ok[T] and Err[E] carry the outcome of every sink, stream and future
operation in this package. Unlike exceptions, an Err travels through
combinators as an ordinary value so a test can assert on it.

The error type is unconstrained: test scripts commonly fail with plain
values such as ``Err(0)`` or ``Err('boom')``.

Example:
    ```python
    from klaw_testkit.result import Err, Ok

    match rx_result:
        case Ok(value): print(f'item {value}')
        case Err(error): print(f'failed with {error!r}')
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeGuard

__all__ = ['Err', 'Ok', 'Result', 'is_err', 'is_ok']


@dataclass(slots=True, frozen=True)
class Ok[T]:
    """Represents a successful computation containing a value of type T.

    Attributes:
        value: The successful result value.
    """

    value: T
    __match_args__ = ('value',)

    def is_ok(self) -> bool:
        """Return True, indicating this is a successful result."""
        return True

    def is_err(self) -> bool:
        """Return False, indicating this is not an error result."""
        return False

    def map[U](self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the value using a function.

        Args:
            f: A callable that takes the value and returns a new value of type U.

        Returns:
            Ok[U]: A new Ok containing the transformed value.
        """
        return Ok(f(self.value))

    def map_err(self, f: Callable[[Any], Any]) -> Ok[T]:
        """Transform the error (no-op for Ok)."""
        return self

    def and_then[U, E](self, f: Callable[[T], Ok[U] | Err[E]]) -> Ok[U] | Err[E]:
        """Chain a computation that may fail.

        Args:
            f: A callable that takes the value and returns a Result.

        Returns:
            The result of applying f to the value.
        """
        return f(self.value)

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value (default is unused for Ok)."""
        return self.value

    def unwrap_err(self) -> Any:
        """Return the error (fails for Ok).

        Raises:
            AssertionError: Always raised for Ok instances.
        """
        raise AssertionError(f'called unwrap_err() on Ok({self.value!r})')

    def expect(self, msg: str) -> T:
        """Return the contained value (message is unused for Ok)."""
        return self.value

    def ok(self) -> T | None:
        """Return the value."""
        return self.value

    def err(self) -> None:
        """Return None, Ok carries no error."""
        return None

    def __repr__(self) -> str:
        """Return a string representation of the Ok instance."""
        return f'Ok({self.value!r})'


@dataclass(slots=True, frozen=True)
class Err[E]:
    """Represents a failed computation containing an error of type E.

    Attributes:
        error: The error value. Any value is allowed, not only exceptions.
    """

    error: E
    __match_args__ = ('error',)

    def is_ok(self) -> bool:
        """Return False, indicating this is not a successful result."""
        return False

    def is_err(self) -> bool:
        """Return True, indicating this is an error result."""
        return True

    def map(self, f: Callable[[Any], Any]) -> Err[E]:
        """Transform the value (no-op for Err)."""
        return self

    def map_err[F](self, f: Callable[[E], F]) -> Err[F]:
        """Transform the error using a function.

        Args:
            f: A callable that takes the error and returns a new error.

        Returns:
            Err[F]: A new Err containing the transformed error.
        """
        return Err(f(self.error))

    def and_then(self, f: Callable[[Any], Any]) -> Err[E]:
        """Chain a computation that may fail (no-op for Err)."""
        return self

    def unwrap(self) -> Any:
        """Return the value (fails for Err).

        Raises:
            E: The contained error, when it is an exception.
            AssertionError: When the contained error is a plain value.
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise AssertionError(f'called unwrap() on Err({self.error!r})')

    def unwrap_or[T](self, default: T) -> T:
        """Return the default value."""
        return default

    def unwrap_err(self) -> E:
        """Return the contained error."""
        return self.error

    def expect(self, msg: str) -> Any:
        """Fail with a custom message.

        Raises:
            AssertionError: Always raised for Err instances.
        """
        raise AssertionError(f'{msg}: {self.error!r}')

    def ok(self) -> None:
        """Return None, Err carries no value."""
        return None

    def err(self) -> E:
        """Return the error."""
        return self.error

    def __repr__(self) -> str:
        """Return a string representation of the Err instance."""
        return f'Err({self.error!r})'


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](r: Result[T, E]) -> TypeGuard[Ok[T]]:
    """Type guard narrowing a Result to Ok."""
    return isinstance(r, Ok)


def is_err[T, E](r: Result[T, E]) -> TypeGuard[Err[E]]:
    """Type guard narrowing a Result to Err."""
    return isinstance(r, Err)
