"""Tests for verifying import styles work correctly."""


class TestFlatImports:
    """Verify flat imports from klaw_testkit work."""

    def test_channel(self) -> None:
        """Test importing the test channel from root."""
        from klaw_testkit import Context, Ok, Ready, test_channel

        tx, rx = test_channel(1)
        tx.start_send(Context.noop(), Ok(1))
        assert rx.poll_next(Context.noop()) == Ready(Ok(1))

    def test_wrappers_and_directives(self) -> None:
        from klaw_testkit import Delegate, Fail, NotReady, TestSink, TestStream, arbitrary_ops

        assert callable(arbitrary_ops)
        assert {Delegate(), NotReady()} == {NotReady(), Delegate()}
        assert Fail('x').error == 'x'
        assert TestSink.__test__ is False
        assert TestStream.__test__ is False

    def test_combinators(self) -> None:
        from klaw_testkit import block_on, close, forward, send_close

        assert callable(block_on)
        assert callable(close)
        assert callable(forward)
        assert callable(send_close)

    def test_all_exports_resolve(self) -> None:
        import klaw_testkit

        missing = [name for name in klaw_testkit.__all__ if not hasattr(klaw_testkit, name)]
        assert missing == []


class TestSubmoduleImports:
    """Verify submodule imports work."""

    def test_submodules(self) -> None:
        from klaw_testkit.channel import TestReceiver, TestSender
        from klaw_testkit.directives import DirectiveScript
        from klaw_testkit.executor import LocalPool
        from klaw_testkit.futures import Forward, SendClose
        from klaw_testkit.protocols import Sink, Stream

        assert TestSender.__test__ is False
        assert TestReceiver.__test__ is False
        assert DirectiveScript is not None
        assert LocalPool is not None
        assert Forward is not None
        assert SendClose is not None
        assert Sink is not None
        assert Stream is not None
