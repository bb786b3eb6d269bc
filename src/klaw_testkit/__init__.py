"""klaw-testkit: deterministic harness for poll-based async sinks and streams.

Flat imports (preferred):
    from klaw_testkit import test_channel, TestSink, TestStream, Ok, Err
    from klaw_testkit import Delegate, NotReady, Fail, arbitrary_ops
    from klaw_testkit import forward, send_close, block_on, join

Submodule imports (for organization):
    from klaw_testkit.channel import test_channel
    from klaw_testkit.directives import DirectiveScript
    from klaw_testkit.futures import Forward, SendClose
    from klaw_testkit.executor import LocalPool
"""

from klaw_testkit._config import HarnessConfig, get_config, init
from klaw_testkit._logging import capture_events, configure_logging, get_logger
from klaw_testkit.channel import TestReceiver, TestSender, test_channel
from klaw_testkit.directives import (
    Delegate,
    Directive,
    DirectiveScript,
    Fail,
    FlushOp,
    NotReady,
    PollOp,
    SendOp,
    arbitrary_ops,
    decode_script,
    encode_script,
)
from klaw_testkit.errors import ContractViolation, ContractViolationError, Stalled, StalledError
from klaw_testkit.executor import LocalPool, TaskHandle, block_on, drive
from klaw_testkit.futures import (
    Close,
    Collect,
    Flush,
    Forward,
    Join,
    Next,
    Send,
    SendAll,
    SendClose,
    close,
    collect,
    flush,
    forward,
    join,
    next_item,
    send,
    send_all,
    send_close,
)
from klaw_testkit.poll import Context, Pending, Poll, Ready, WakeHandle
from klaw_testkit.protocols import Future, Sink, Stream
from klaw_testkit.result import Err, Ok, Result
from klaw_testkit.sink import TestSink
from klaw_testkit.stream import Fuse, TestStream, iter_ok, iter_results

__all__ = [
    # Futures
    'Close',
    'Collect',
    # Poll
    'Context',
    # Errors
    'ContractViolation',
    'ContractViolationError',
    # Directives
    'Delegate',
    'Directive',
    'DirectiveScript',
    'Err',
    'Fail',
    'Flush',
    'FlushOp',
    'Forward',
    'Fuse',
    'Future',
    # Config
    'HarnessConfig',
    'Join',
    # Executor
    'LocalPool',
    'Next',
    'NotReady',
    # Result
    'Ok',
    'Pending',
    'Poll',
    'PollOp',
    'Ready',
    'Result',
    'Send',
    'SendAll',
    'SendClose',
    'SendOp',
    # Protocols
    'Sink',
    'Stalled',
    'StalledError',
    'Stream',
    'TaskHandle',
    # Channel
    'TestReceiver',
    'TestSender',
    # Wrappers
    'TestSink',
    'TestStream',
    'WakeHandle',
    'arbitrary_ops',
    'block_on',
    'capture_events',
    'close',
    'collect',
    # Logging
    'configure_logging',
    'decode_script',
    'drive',
    'encode_script',
    'flush',
    'forward',
    'get_config',
    'get_logger',
    'init',
    'iter_ok',
    'iter_results',
    'join',
    'next_item',
    'send',
    'send_all',
    'send_close',
    'test_channel',
]
