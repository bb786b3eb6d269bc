"""Scripted directives for fault-injecting wrappers.

A directive tells a wrapper what to do the next time one of its operations
is called:

- ``Delegate()``: call into the wrapped sink or stream.
- ``NotReady()``: report pending without touching it, and immediately wake
  the current task so it gets polled again.
- ``Fail(error)``: fail with ``error`` without touching it.

Directives are msgspec tagged structs, so fault scripts can be stored as
JSON or MessagePack fixtures:

    >>> data = encode_script([NotReady(), Fail('boom')])
    >>> decode_script(data)
    [NotReady(), Fail(error='boom')]
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator
from typing import Any, Final, Generic, Literal, TypeVar

import msgspec

from klaw_testkit._config import current_config
from klaw_testkit.errors import ContractViolation

__all__ = [
    'DELEGATE',
    'Delegate',
    'Directive',
    'DirectiveScript',
    'Fail',
    'FlushOp',
    'NotReady',
    'PollOp',
    'SendOp',
    'arbitrary_ops',
    'decode_script',
    'encode_script',
]

E = TypeVar('E')


class Delegate(msgspec.Struct, tag='delegate', frozen=True, gc=False):
    """Simply delegate to the wrapped sink or stream."""


class NotReady(msgspec.Struct, tag='not_ready', frozen=True, gc=False):
    """Report pending instead of calling the wrapped operation.

    The current task is notified right away.
    """


class Fail(msgspec.Struct, Generic[E], tag='fail', frozen=True):
    """Fail with ``error`` instead of calling the wrapped operation."""

    error: E


type Directive[E] = Delegate | NotReady | Fail[E]

# One family per wrapped entry point: start_send, poll_flush, poll_next.
type SendOp[E] = Directive[E]
type FlushOp[E] = Directive[E]
type PollOp[E] = Directive[E]

DELEGATE: Final = Delegate()
_NOT_READY: Final = NotReady()

type ScriptFormat = Literal['json', 'msgpack']


class DirectiveScript[E]:
    """Lazily consumed, fused sequence of directives.

    Exactly one directive is pulled per wrapped call. Once the underlying
    iterable is exhausted the script answers ``Delegate()`` forever and
    never touches the iterable again.
    """

    __slots__ = ('_consumed', '_exhausted', '_ops')

    def __init__(self, ops: Iterable[Directive[E]] = ()) -> None:
        self._ops: Iterator[Directive[E]] = iter(ops)
        self._exhausted = False
        self._consumed = 0

    @property
    def consumed(self) -> int:
        """Number of directives taken from the iterable so far."""
        return self._consumed

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def next_op(self) -> Directive[E]:
        """Return the directive for the current call.

        Raises:
            ContractViolationError: If the iterable yields something that is
                not a directive.
        """
        if self._exhausted:
            return DELEGATE
        try:
            op = next(self._ops)
        except StopIteration:
            self._exhausted = True
            self._ops = iter(())
            return DELEGATE

        if not isinstance(op, Delegate | NotReady | Fail):
            raise ContractViolation(f'Expected a directive, got {op!r}').to_exception()
        self._consumed += 1
        return op

    def __repr__(self) -> str:
        state = 'exhausted' if self._exhausted else 'active'
        return f'DirectiveScript({state}, consumed={self._consumed})'


def arbitrary_ops(
    rng: random.Random | None = None,
    count: int | None = None,
    not_ready_ratio: float | None = None,
) -> Iterator[Directive[Any]]:
    """Generate random directives: ``Delegate`` or ``NotReady``, never ``Fail``.

    With the default ratio, 75% of the directives delegate and 25% force a
    not-ready result. Failures are always scripted explicitly by tests.

    Args:
        rng: Random source. Defaults to one seeded from the harness config.
        count: Number of directives to generate. None = infinite.
        not_ready_ratio: Probability of ``NotReady``. Defaults to the
            harness config (0.25).

    Example:
        ```python
        sink = TestSink(tx, send_ops=arbitrary_ops(random.Random(7), count=20))
        ```
    """
    config = current_config()
    if rng is None:
        rng = random.Random(config.seed)  # noqa: S311
    ratio = config.not_ready_ratio if not_ready_ratio is None else not_ready_ratio

    produced = 0
    while count is None or produced < count:
        yield _NOT_READY if rng.random() < ratio else DELEGATE
        produced += 1


_json_encoder = msgspec.json.Encoder()
_msgpack_encoder = msgspec.msgpack.Encoder()
_json_decoder = msgspec.json.Decoder(list[Delegate | NotReady | Fail[Any]])
_msgpack_decoder = msgspec.msgpack.Decoder(list[Delegate | NotReady | Fail[Any]])


def encode_script(ops: Iterable[Directive[Any]], format: ScriptFormat = 'json') -> bytes:  # noqa: A002
    """Encode a finite directive sequence.

    Args:
        ops: Directives to encode. Must be finite.
        format: "json" or "msgpack".

    Returns:
        Encoded bytes.
    """
    items = list(ops)
    if format == 'json':
        return _json_encoder.encode(items)
    if format == 'msgpack':
        return _msgpack_encoder.encode(items)
    msg = f'Unknown script format: {format!r}'
    raise ValueError(msg)


def decode_script(data: bytes | str, format: ScriptFormat = 'json') -> list[Directive[Any]]:  # noqa: A002
    """Decode a directive sequence produced by ``encode_script``.

    Raises:
        msgspec.ValidationError: If the data does not describe directives.
        ValueError: If the format is unknown.
    """
    if format == 'json':
        return _json_decoder.decode(data)
    if format == 'msgpack':
        return _msgpack_decoder.decode(data)
    msg = f'Unknown script format: {format!r}'
    raise ValueError(msg)
