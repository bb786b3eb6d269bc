"""Pytest configuration for klaw-testkit tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from klaw_testkit import Context

from tests.fakes import WakeCounter

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def wakes() -> WakeCounter:
    return WakeCounter()


@pytest.fixture
def cx(wakes: WakeCounter) -> Context:
    """Context whose wake-ups are counted by the ``wakes`` fixture."""
    return Context.from_callback(wakes)


@pytest.fixture
def fresh_config() -> Generator[None]:
    """Forget any harness configuration set by the test."""
    from klaw_testkit import _config

    previous = _config._config
    _config._config = None
    yield
    _config._config = previous


@pytest.fixture
def restore_logging() -> Generator[None]:
    """Restore root logger handlers and level changed by configure_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
