"""Harness configuration: HarnessConfig and initialization."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from klaw_testkit._logging import configure_logging

__all__ = [
    'HarnessConfig',
    'current_config',
    'get_config',
    'init',
]

ENV_MAX_POLLS = 'KLAW_TESTKIT_MAX_POLLS'
ENV_SEED = 'KLAW_TESTKIT_SEED'
ENV_LOG_LEVEL = 'KLAW_TESTKIT_LOG_LEVEL'


@dataclass(frozen=True)
class HarnessConfig:
    """Configuration for the test harness.

    Attributes:
        max_polls: Poll budget of ``block_on`` and ``LocalPool.run`` before a
            still-pending future is reported as stalled.
        not_ready_ratio: Share of ``NotReady`` directives in randomly
            generated fault scripts.
        seed: Seed for randomly generated fault scripts (None = unseeded).
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = silent.
    """

    max_polls: int = 100_000
    not_ready_ratio: float = 0.25
    seed: int | None = None
    log_level: str | None = None


# Global harness configuration (set by init())
_config: HarnessConfig | None = None


def _env_int(name: str) -> int | None:
    """Read an integer environment variable, ignoring malformed values."""
    raw = os.environ.get(name, '').strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logging.warning("Ignoring non-integer %s value '%s'", name, raw)
        return None


def init(
    max_polls: int | None = None,
    not_ready_ratio: float | None = None,
    seed: int | None = None,
    log_level: str | None = None,
) -> HarnessConfig:
    """Initialize the harness with the specified configuration.

    Arguments win over environment variables (``KLAW_TESTKIT_MAX_POLLS``,
    ``KLAW_TESTKIT_SEED``, ``KLAW_TESTKIT_LOG_LEVEL``), which win over the
    defaults of ``HarnessConfig``.

    Args:
        max_polls: Poll budget for executors. Clamped to at least 1.
        not_ready_ratio: Share of NotReady in generated scripts, in [0, 1].
        seed: Seed for generated scripts.
        log_level: Logging level ("DEBUG", "INFO", etc.). None = silent.

    Returns:
        The HarnessConfig that was set.

    Raises:
        ValueError: If not_ready_ratio is outside [0, 1].

    Example:
        ```python
        from klaw_testkit import init

        init(max_polls=1_000, log_level='DEBUG')
        ```
    """
    global _config  # noqa: PLW0603

    defaults = HarnessConfig()

    if max_polls is None:
        max_polls = _env_int(ENV_MAX_POLLS) or defaults.max_polls
    resolved_max_polls = max(1, max_polls)

    if not_ready_ratio is None:
        not_ready_ratio = defaults.not_ready_ratio
    if not 0.0 <= not_ready_ratio <= 1.0:
        msg = f'not_ready_ratio must be within [0, 1], got {not_ready_ratio}'
        raise ValueError(msg)

    if seed is None:
        seed = _env_int(ENV_SEED)

    if log_level is None:
        log_level = os.environ.get(ENV_LOG_LEVEL) or None

    _config = HarnessConfig(
        max_polls=resolved_max_polls,
        not_ready_ratio=not_ready_ratio,
        seed=seed,
        log_level=log_level,
    )

    if log_level is not None:
        configure_logging(log_level)

    return _config


def get_config() -> HarnessConfig:
    """Get the current harness configuration.

    Raises:
        RuntimeError: If init() has not been called.
    """
    if _config is None:
        msg = 'Harness not initialized. Call klaw_testkit.init() first.'
        raise RuntimeError(msg)
    return _config


def current_config() -> HarnessConfig:
    """Get the current configuration, or the defaults when init() was not called."""
    return _config if _config is not None else HarnessConfig()
