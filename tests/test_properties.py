"""Property-based tests: channel and combinators under random fault scripts.

Whatever NotReady directives are injected on either side of a channel,
every item must arrive exactly once and in order.
"""

from __future__ import annotations

import random

import pytest
from hypothesis import given, settings
from klaw_testkit import (
    Delegate,
    LocalPool,
    Ok,
    TestSink,
    TestStream,
    arbitrary_ops,
    collect,
    forward,
    iter_ok,
    send_close,
    test_channel,
)

from tests.fakes import VecSink
from tests.strategies import capacities, integers, item_lists, non_failing_scripts, seeds

pytestmark = pytest.mark.hypothesis_property


class TestForwardUnderFaults:
    """Forward keeps every item when sink and stream stall at random."""

    @settings(max_examples=50)
    @given(items=item_lists, capacity=capacities, seed=seeds)
    def test_forward_delivers_every_item_in_order(self, items: list[int], capacity: int, seed: int) -> None:
        rng = random.Random(seed)
        tx, rx = test_channel(capacity)
        sink = TestSink(tx, send_ops=arbitrary_ops(rng), flush_ops=arbitrary_ops(rng))
        source = TestStream(iter_ok([Ok(item) for item in items]), arbitrary_ops(rng))
        receiver = TestStream(rx, arbitrary_ops(rng))

        pool = LocalPool()
        forwarding = pool.spawn(forward(source, sink))
        receiving = pool.spawn(collect(receiver))
        pool.run_until_stalled()

        assert forwarding.result().unwrap()[0] is sink
        assert not tx.is_closed()

        tx.close()
        pool.run()
        assert receiving.result() == Ok(items)

    @given(send_ops=non_failing_scripts, poll_ops=non_failing_scripts, item=integers)
    def test_send_close_delivers_single_item(self, send_ops: list, poll_ops: list, item: int) -> None:
        tx, rx = test_channel(1)
        pool = LocalPool()
        closing = pool.spawn(send_close(TestSink(tx, send_ops=send_ops), Ok(item)))
        receiving = pool.spawn(collect(TestStream(rx, poll_ops)))

        pool.run()

        assert closing.result().is_ok()
        assert tx.is_closed()
        assert receiving.result() == Ok([item])


class TestScriptedStalls:
    """NotReady always wakes the polling task, so scripted stalls never deadlock."""

    @given(ops=non_failing_scripts)
    def test_each_leading_not_ready_costs_one_poll(self, ops: list) -> None:
        leading = next((i for i, op in enumerate(ops) if op == Delegate()), len(ops))
        pool = LocalPool()
        sending = pool.spawn(send_close(TestSink(VecSink(), send_ops=ops), 'x'))

        pool.run()

        assert sending.polls == leading + 1
        assert sending.result().unwrap().items == ['x']
