"""Tests for LocalPool, block_on and drive."""

from __future__ import annotations

import asyncio
import itertools

import pytest
from klaw_testkit import (
    Context,
    LocalPool,
    NotReady,
    Ok,
    StalledError,
    TestStream,
    block_on,
    collect,
    drive,
    init,
    next_item,
    send_close,
    test_channel,
)

from tests.fakes import VecSink


class TestLocalPool:
    """Tests for the deterministic single-threaded pool."""

    def test_runs_tasks_to_completion_in_spawn_order(self) -> None:
        tx, rx = test_channel(1)
        pool = LocalPool()
        sending = pool.spawn(send_close(tx, Ok(1)))
        receiving = pool.spawn(collect(rx))

        assert pool.run() == [Ok(tx), Ok([1])]
        assert sending.is_done()
        assert receiving.result() == Ok([1])
        assert pool.pending_tasks() == []

    def test_run_reports_tasks_finished_in_earlier_runs(self) -> None:
        """Completed tasks stay registered, so run() returns every result in spawn order."""
        pool = LocalPool()
        first = pool.spawn(send_close(VecSink(), 'a'))
        pool.run()

        second = pool.spawn(send_close(VecSink(), 'b'))
        results = pool.run()

        assert results == [first.result(), second.result()]
        assert [r.unwrap().items for r in results] == [['a'], ['b']]

    def test_result_before_completion_raises(self) -> None:
        _tx, rx = test_channel(1)
        pool = LocalPool()
        task = pool.spawn(next_item(rx))
        with pytest.raises(RuntimeError, match='not yet complete'):
            task.result()

    def test_run_until_stalled_reports_pending_work(self) -> None:
        tx, rx = test_channel(1)
        pool = LocalPool()
        task = pool.spawn(next_item(rx))

        assert not pool.run_until_stalled()
        assert pool.pending_tasks() == [task]
        assert task.polls == 1

        tx.start_send(Context.noop(), Ok('late'))
        assert pool.run_until_stalled()
        assert task.result() == Ok(Ok('late'))

    def test_never_woken_task_is_stalled(self) -> None:
        """A pending future that nobody will wake is reported, not spun on."""
        _tx, rx = test_channel(1)
        with pytest.raises(StalledError, match='never woken') as exc_info:
            block_on(next_item(rx))
        assert not exc_info.value.budget_exhausted
        assert exc_info.value.polls == 1

    def test_poll_budget(self) -> None:
        _tx, rx = test_channel(1)
        stream = TestStream(rx, itertools.repeat(NotReady()))
        with pytest.raises(StalledError, match='poll budget') as exc_info:
            block_on(next_item(stream), max_polls=50)
        assert exc_info.value.budget_exhausted
        assert exc_info.value.polls == 50

    def test_budget_taken_from_config(self, fresh_config: None) -> None:
        init(max_polls=10)
        _tx, rx = test_channel(1)
        stream = TestStream(rx, itertools.repeat(NotReady()))
        with pytest.raises(StalledError) as exc_info:
            block_on(next_item(stream))
        assert exc_info.value.polls == 10

    def test_stalled_error_round_trips_to_struct(self) -> None:
        _tx, rx = test_channel(1)
        with pytest.raises(StalledError) as exc_info:
            block_on(next_item(rx))
        struct = exc_info.value.to_struct()
        assert struct.to_exception().args == exc_info.value.args


class TestDrive:
    """Tests for awaiting poll-based futures from asyncio code."""

    async def test_ready_future(self) -> None:
        sink = VecSink()
        assert await drive(send_close(sink, 1)) == Ok(sink)
        assert sink.closed

    async def test_waits_for_other_task(self) -> None:
        tx, rx = test_channel(1)

        async def produce() -> None:
            await asyncio.sleep(0)
            await tx.send(Ok('hello'))
            tx.close()

        producer = asyncio.create_task(produce())
        assert await drive(collect(rx)) == Ok(['hello'])
        await producer

    async def test_self_notifying_future_yields_to_loop(self) -> None:
        """A stream that keeps reporting NotReady does not starve other tasks."""
        tx, rx = test_channel(1)
        stream = TestStream(rx, [NotReady()] * 20)
        ticks = []

        async def ticker() -> None:
            for i in range(3):
                ticks.append(i)
                await asyncio.sleep(0)
            tx.close()

        task = asyncio.create_task(ticker())
        assert await drive(next_item(stream)) == Ok(None)
        await task
        assert ticks == [0, 1, 2]

    async def test_poll_budget(self) -> None:
        _tx, rx = test_channel(1)
        stream = TestStream(rx, itertools.repeat(NotReady()))
        with pytest.raises(StalledError, match='poll budget'):
            await drive(next_item(stream), max_polls=10)
