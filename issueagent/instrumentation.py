"""Startup latency measurement."""

from __future__ import annotations

import contextlib
import datetime as dt
import time
import typing as typ

from issueagent.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)


class StartupMetricsRecorder:
    """Measure how long the agent takes from start to retrieved context.

    The duration is recorded when the measured block exits, whether it
    returns or raises. Subclasses may override :meth:`record` to forward
    the value elsewhere.
    """

    def __init__(self) -> None:
        """Initialise with no recorded measurement."""
        self._last_duration: dt.timedelta | None = None

    @property
    def last_duration(self) -> dt.timedelta | None:
        """Return the most recently recorded duration."""
        return self._last_duration

    @contextlib.contextmanager
    def measure(self) -> cabc.Iterator[None]:
        """Time the enclosed block and record its duration."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record(dt.timedelta(seconds=time.perf_counter() - started))

    def record(self, duration: dt.timedelta) -> None:
        """Store and log ``duration``."""
        self._last_duration = duration
        log_info(
            logger,
            "StartupDurationMs=%d",
            duration // dt.timedelta(milliseconds=1),
        )
