"""Harness error types, each as a msgspec struct paired with an exception.

Only misuse of the harness itself lives here. Errors that flow through a
sink or stream (injected errors, inner failures) are ordinary values carried
by ``Err`` and are never raised.
"""

from __future__ import annotations

import msgspec

__all__ = [
    'ContractViolation',
    'ContractViolationError',
    'Stalled',
    'StalledError',
]


class ContractViolation(msgspec.Struct, frozen=True, gc=False):
    """Programming error in the test - struct variant.

    Raised (via ``to_exception``) for a zero capacity channel, for polling or
    accessing a combinator after it produced its result, and for sending
    into a closed test channel.
    """

    message: str

    def to_exception(self) -> ContractViolationError:
        """Convert to exception for raise-based code."""
        return ContractViolationError(self.message)


class ContractViolationError(RuntimeError):
    """Programming error in the test - exception variant."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_struct(self) -> ContractViolation:
        """Convert to struct for Result-based code."""
        return ContractViolation(self.message)


class Stalled(msgspec.Struct, frozen=True, gc=False):
    """A future cannot make progress - struct variant.

    Either it returned pending without anybody holding a wake handle
    (``polls`` is the number of polls made so far), or it used up the poll
    budget while being woken over and over.
    """

    polls: int
    budget_exhausted: bool = False

    def to_exception(self) -> StalledError:
        """Convert to exception for raise-based code."""
        return StalledError(self.polls, self.budget_exhausted)


class StalledError(Exception):
    """A future cannot make progress - exception variant."""

    def __init__(self, polls: int, budget_exhausted: bool = False) -> None:
        self.polls = polls
        self.budget_exhausted = budget_exhausted
        if budget_exhausted:
            msg = f'Future still pending after poll budget of {polls} polls'
        else:
            msg = f'Future stalled after {polls} polls: pending and never woken'
        super().__init__(msg)

    def to_struct(self) -> Stalled:
        """Convert to struct for Result-based code."""
        return Stalled(self.polls, self.budget_exhausted)
