"""Tests for directives, DirectiveScript and script generation/encoding."""

from __future__ import annotations

import itertools
import random

import msgspec
import pytest
from hypothesis import given
from klaw_testkit import (
    ContractViolationError,
    Delegate,
    DirectiveScript,
    Fail,
    NotReady,
    arbitrary_ops,
    decode_script,
    encode_script,
    init,
)

from tests.strategies import non_failing_scripts, scripts


class TestDirectiveScript:
    """Tests for lazy, fused consumption of directive iterables."""

    def test_yields_directives_in_order(self) -> None:
        script = DirectiveScript([NotReady(), Fail('boom'), Delegate()])
        assert script.next_op() == NotReady()
        assert script.next_op() == Fail('boom')
        assert script.next_op() == Delegate()
        assert script.consumed == 3

    def test_exhausted_script_delegates_forever(self) -> None:
        script = DirectiveScript([NotReady()])
        script.next_op()
        for _ in range(5):
            assert script.next_op() == Delegate()
        assert script.exhausted
        assert script.consumed == 1

    def test_empty_script_delegates(self) -> None:
        assert DirectiveScript().next_op() == Delegate()

    def test_pulls_one_directive_per_call(self) -> None:
        """The iterable is consumed lazily, one element per call."""
        pulled = []

        def ops():
            for op in [NotReady(), Delegate()]:
                pulled.append(op)
                yield op

        script = DirectiveScript(ops())
        assert pulled == []
        script.next_op()
        assert pulled == [NotReady()]

    def test_iterable_not_touched_after_exhaustion(self) -> None:
        """A sequence that ends is never resumed, even if it could produce more."""
        ops = [NotReady()]
        script = DirectiveScript(iter(ops))
        script.next_op()
        script.next_op()
        ops.append(Fail('late'))
        assert script.next_op() == Delegate()

    def test_infinite_script(self) -> None:
        script = DirectiveScript(itertools.repeat(NotReady()))
        assert all(script.next_op() == NotReady() for _ in range(100))
        assert not script.exhausted

    def test_non_directive_is_contract_violation(self) -> None:
        script = DirectiveScript(['not a directive'])
        with pytest.raises(ContractViolationError, match='Expected a directive'):
            script.next_op()

    @given(ops=scripts)
    def test_replays_any_script_then_delegates(self, ops: list) -> None:
        script = DirectiveScript(ops)
        assert [script.next_op() for _ in range(len(ops) + 3)] == [*ops, Delegate(), Delegate(), Delegate()]


class TestArbitraryOps:
    """Tests for randomly generated directive scripts."""

    def test_never_fails(self) -> None:
        ops = list(arbitrary_ops(random.Random(1), count=500))
        assert len(ops) == 500
        assert not any(isinstance(op, Fail) for op in ops)

    def test_quarter_of_directives_are_not_ready(self) -> None:
        ops = list(arbitrary_ops(random.Random(7), count=4_000))
        not_ready = sum(isinstance(op, NotReady) for op in ops)
        assert 800 < not_ready < 1_200

    def test_same_seed_same_script(self) -> None:
        first = list(arbitrary_ops(random.Random(42), count=50))
        second = list(arbitrary_ops(random.Random(42), count=50))
        assert first == second

    @pytest.mark.parametrize(('ratio', 'expected'), [(0.0, Delegate()), (1.0, NotReady())])
    def test_ratio_bounds(self, ratio: float, expected: object) -> None:
        ops = list(arbitrary_ops(random.Random(3), count=20, not_ready_ratio=ratio))
        assert ops == [expected] * 20

    def test_unbounded_by_default(self) -> None:
        ops = arbitrary_ops(random.Random(5))
        assert len(list(itertools.islice(ops, 1_000))) == 1_000

    def test_seed_taken_from_config(self, fresh_config: None) -> None:
        init(seed=11)
        first = list(arbitrary_ops(count=30))
        second = list(arbitrary_ops(count=30))
        assert first == second
        assert first == list(arbitrary_ops(random.Random(11), count=30))


class TestScriptEncoding:
    """Tests for storing scripts as JSON or MessagePack."""

    def test_json_layout(self) -> None:
        data = encode_script([Delegate(), NotReady(), Fail('boom')])
        assert msgspec.json.decode(data) == [
            {'type': 'delegate'},
            {'type': 'not_ready'},
            {'type': 'fail', 'error': 'boom'},
        ]

    def test_decode_json_fixture(self) -> None:
        data = '[{"type": "not_ready"}, {"type": "fail", "error": {"code": 3}}]'
        assert decode_script(data) == [NotReady(), Fail({'code': 3})]

    @given(ops=non_failing_scripts)
    def test_msgpack_preserves_script(self, ops: list) -> None:
        assert decode_script(encode_script(ops, 'msgpack'), 'msgpack') == ops

    def test_unknown_tag_rejected(self) -> None:
        with pytest.raises(msgspec.ValidationError):
            decode_script('[{"type": "explode"}]')

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(ValueError, match='Unknown script format'):
            encode_script([Delegate()], 'yaml')  # type: ignore[arg-type]
