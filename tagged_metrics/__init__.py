"""
tagged_metrics: in-process metric sources with a global activation switch.

Declares named, tagged sources, decides cheaply whether each one is worth
reporting, and hands data points from active sources to a single pluggable
reporter.

Usage:
    from tagged_metrics import Tags, Fields, push_source, timer_source, enable_tag, push, run

    # Declare a source once, at import time
    cpu = push_source(
        "myapp.cpu",
        tags=[Tags.int("pid"), Tags.string("host")],
        fields=[Fields.float("cpu", unit="%"), Fields.int("mem", unit="KiB")],
    )

    # Turn on every source that carries a "pid" tag
    enable_tag("pid")

    # At the call site; the lambda only runs if cpu is active
    push(cpu.v(42, "foo.local"), lambda data: data(3.5, 1024))

    # Time a computation (duration + status fields)
    db = timer_source("myapp.db", tags=[Tags.string("query")])
    rows = run(db, ("select",), None, lambda: fetch_rows())
"""

from tagged_metrics.dispatch import add, arun, push, rrun, run, timed
from tagged_metrics.errors import ConfigurationError, MetricsError
from tagged_metrics.registry import (
    Instance,
    Kind,
    Predicate,
    Source,
    SourceRegistry,
    compare,
    create_source,
    disable,
    disable_all,
    disable_tag,
    enable,
    enable_all,
    enable_tag,
    get_registry,
    push_source,
    reset,
    sources,
    timer_source,
)
from tagged_metrics.reporting import NopReporter, Reporter, now, reporter, set_reporter
from tagged_metrics.result import Err, Ok
from tagged_metrics.schema import (
    Data,
    DataPoint,
    Field,
    Fields,
    FieldSchema,
    Graph,
    Status,
    Tags,
    TagSchema,
    ValueType,
    is_valid_name,
    reset_graphs,
)

__all__ = [
    "add",
    "arun",
    "push",
    "rrun",
    "run",
    "timed",
    "ConfigurationError",
    "MetricsError",
    "Instance",
    "Kind",
    "Predicate",
    "Source",
    "SourceRegistry",
    "compare",
    "create_source",
    "disable",
    "disable_all",
    "disable_tag",
    "enable",
    "enable_all",
    "enable_tag",
    "get_registry",
    "push_source",
    "reset",
    "sources",
    "timer_source",
    "NopReporter",
    "Reporter",
    "now",
    "reporter",
    "set_reporter",
    "Err",
    "Ok",
    "Data",
    "DataPoint",
    "Field",
    "Fields",
    "FieldSchema",
    "Graph",
    "Status",
    "Tags",
    "TagSchema",
    "ValueType",
    "is_valid_name",
    "reset_graphs",
]
