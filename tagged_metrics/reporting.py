"""
Reporter contract and the process-wide reporter.

A reporter is the single sink for data points from active sources. Exactly
one is installed at a time; the default NopReporter discards everything.

Reporters don't need to inherit from Reporter. Any object with now(),
report() and (optionally) at_exit() is accepted. The ABC exists to document
the contract.

Contract for report():
    report(tags, data, on_ack, source, continuation) -> R

    - tags: ordered [(name, rendered value), ...] of the source instance
    - data: the DataPoint; fill in a timestamp if data.timestamp is None
    - on_ack: call once the data point has been recorded
    - continuation: call after on_ack and return its result; for timed
      calls this is what hands the wrapped computation's value back

Usage:
    from tagged_metrics.reporting import set_reporter
    from tagged_metrics.reporters import ConsoleReporter

    set_reporter(ConsoleReporter())
"""

import atexit
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, List, Tuple, TypeVar

from tagged_metrics.errors import ConfigurationError
from tagged_metrics.utils.logger import get_logger

logger = get_logger(__name__)

R = TypeVar("R")


def monotonic_ms() -> int:
    """Monotonic clock reading in milliseconds."""
    return time.monotonic_ns() // 1_000_000


def utc_timestamp() -> str:
    """Current time as an RFC3339 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


class Reporter(ABC):
    """Interface for metric sinks."""

    @abstractmethod
    def now(self) -> int:
        """Clock reading in milliseconds, used to time run()/rrun() bodies."""
        ...

    @abstractmethod
    def report(
        self,
        tags: List[Tuple[str, str]],
        data: Any,
        on_ack: Callable[[], None],
        source: Any,
        continuation: Callable[[], R],
    ) -> R:
        ...

    def at_exit(self) -> None:
        """Called once at interpreter shutdown while this reporter is installed."""
        pass


class NopReporter(Reporter):
    """Reporter that does nothing. The default until set_reporter() is called."""

    def now(self) -> int:
        return 0

    def report(self, tags, data, on_ack, source, continuation):
        on_ack()
        return continuation()


_reporter = NopReporter()
_exited = False


def set_reporter(new_reporter) -> None:
    """
    Install the process-wide reporter.

    Raises:
        ConfigurationError: If the object lacks callable now() and report()
    """
    global _reporter
    for method in ("now", "report"):
        if not callable(getattr(new_reporter, method, None)):
            raise ConfigurationError(
                f"reporter must provide a callable {method}()",
                details={"reporter": type(new_reporter).__name__},
            )
    _reporter = new_reporter
    logger.info(f"Installed metrics reporter: {type(new_reporter).__name__}")


def reporter():
    """The installed reporter."""
    return _reporter


def now() -> int:
    """The installed reporter's clock."""
    return _reporter.now()


def _run_at_exit() -> None:
    global _exited
    if _exited:
        return
    _exited = True
    hook = getattr(_reporter, "at_exit", None)
    if hook is not None:
        hook()


atexit.register(_run_at_exit)
