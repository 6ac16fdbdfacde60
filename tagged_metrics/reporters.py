"""
Concrete reporters.

1. MemoryReporter → keeps every data point in a list (tests, debugging)
2. ConsoleReporter → one line per data point on a text stream

Both stamp data points that arrive without a timestamp with the current
RFC3339 UTC time, acknowledge, then return the continuation's result.
"""

import json
import sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional, TextIO, Tuple

from tagged_metrics.reporting import Reporter, monotonic_ms, utc_timestamp
from tagged_metrics.schema import DataPoint
from tagged_metrics.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Record:
    """One data point as received by a MemoryReporter."""
    source: str
    uid: int
    tags: List[Tuple[str, str]]
    fields: List[Tuple[str, str]]
    timestamp: str
    data: DataPoint = field(repr=False)


class MemoryReporter(Reporter):
    """Buffers reported data points in memory."""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self.records: List[Record] = []
        self.closed = False
        self._clock = clock or monotonic_ms

    def now(self) -> int:
        return self._clock()

    def report(self, tags, data, on_ack, source, continuation):
        self.records.append(Record(
            source=source.name,
            uid=source.uid,
            tags=list(tags),
            fields=data.rendered(),
            timestamp=data.timestamp or utc_timestamp(),
            data=data,
        ))
        on_ack()
        return continuation()

    def at_exit(self) -> None:
        self.closed = True
        logger.debug(f"MemoryReporter closed with {len(self.records)} records")

    def for_source(self, source) -> List[Record]:
        return [r for r in self.records if r.uid == source.uid]

    def clear(self) -> None:
        self.records.clear()


def _fmt_pairs(pairs: List[Tuple[str, str]]) -> str:
    return ",".join(f"{k}={json.dumps(v, ensure_ascii=False)}" for k, v in pairs)


def format_line(name: str, tags: List[Tuple[str, str]], data: DataPoint) -> str:
    """
    Format a data point as: name tag="v",... field="v",... timestamp

    Example:
        host.cpu pid="42",host="foo.local" cpu="3.5",mem="1024" 2026-10-18T04:13:00+00:00

    Values are JSON string literals, so embedded quotes and backslashes are
    escaped and a comma inside a value never splits a pair.
    """
    timestamp = data.timestamp or utc_timestamp()
    return f"{name} {_fmt_pairs(tags)} {_fmt_pairs(data.rendered())} {timestamp}"


class ConsoleReporter(Reporter):
    """Prints one line per data point. Writes to sys.stdout unless given a stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def now(self) -> int:
        return monotonic_ms()

    def report(self, tags, data, on_ack, source, continuation):
        print(format_line(source.name, tags, data), file=self.stream)
        on_ack()
        return continuation()

    def at_exit(self) -> None:
        self.stream.flush()
