"""Structured logging configuration for klaw-testkit.

Uses structlog's ProcessorFormatter to unify structlog and stdlib logging
output. The harness logs channel wake-ups, applied directives and
combinator outcomes at debug level; nothing is emitted until
``configure_logging`` (or ``init(log_level=...)``) is called.

Tests that want to assert on those events wrap the code under test in
``capture_events``, which hands back the event dicts instead of making the
test parse rendered output.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    'capture_events',
    'configure_logging',
    'get_logger',
]

# Name of the handler installed on the root logger, so reconfiguring only
# replaces our own handler and leaves pytest's capture handlers in place.
_HANDLER_NAME = 'klaw_testkit'

# Active captures, innermost last: (event names to keep, destination list).
_captures: list[tuple[frozenset[str], list[dict[str, Any]]]] = []


def _capture(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for names, captured in _captures:
        if not names or event_dict.get('event') in names:
            captured.append(dict(event_dict))
    return event_dict


def _processors(*, foreign: bool) -> list[Any]:
    """Build the processor chain.

    Foreign (stdlib) records only get the shared enrichment steps; structlog
    loggers additionally filter by level up front and hand over to the
    formatter at the end.
    """
    import structlog

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.stdlib.ExtraAdder(),
        _capture,
    ]
    if foreign:
        return shared
    return [
        structlog.stdlib.filter_by_level,
        *shared,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def configure_logging(
    level: str = 'INFO',
    *,
    json_output: bool = True,
) -> None:
    """Route harness and stdlib logs through one structlog formatter.

    Calling it again replaces the handler installed by the previous call;
    other handlers on the root logger are kept.

    Args:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL").
        json_output: If True, emit JSON logs. If False, use colored console output.
    """
    import structlog

    structlog.configure(
        processors=_processors(foreign=False),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_processors(foreign=True),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    for previous in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(previous)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger backed by a stdlib logger.

    The stdlib logger decides whether an event is emitted, so harness debug
    events stay silent until logging is configured.
    """
    import structlog

    return structlog.wrap_logger(logging.getLogger(name))


@contextlib.contextmanager
def capture_events(*names: str) -> Iterator[list[dict[str, Any]]]:
    """Collect the log entries emitted inside the block.

    Only entries that pass the configured level are seen, so call
    ``configure_logging('DEBUG')`` first to observe harness events.

    Args:
        *names: Event names to keep. Every entry is kept when empty.

    Yields:
        The list the entries are appended to, each a copy of the event dict.

    Example:
        ```python
        configure_logging('DEBUG')
        with capture_events('directive applied') as events:
            sink.start_send(cx, 1)
        assert events[0]['directive'] == 'not_ready'
        ```
    """
    captured: list[dict[str, Any]] = []
    entry = (frozenset(names), captured)
    _captures.append(entry)
    try:
        yield captured
    finally:
        _captures[:] = [c for c in _captures if c is not entry]
