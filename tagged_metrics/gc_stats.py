"""
Garbage collector statistics sources.

Usage:
    from tagged_metrics.gc_stats import gc_quick_stat, gc_stat, push_gc_stats

    gc_src = gc_stat(tags=[Tags.string("host")])
    push_gc_stats(gc_src.v("foo.local"))

gc_quick_stat() reports only the per-generation allocation counts, which
are cheap to read. gc_stat() adds the collection history from
gc.get_stats() and the frozen object count. Within each source all fields
share one graph so a plotting reporter draws them together.
"""

import functools
import gc
from typing import Optional

from tagged_metrics.dispatch import push
from tagged_metrics.registry import Instance, Source, SourceRegistry, get_registry
from tagged_metrics.schema import Data, DataPoint, Graph

GC_DOC = "Python garbage collector counters"
GC_QUICK_DOC = "Python garbage collector counters (quick)"


def gc_quick_data(graph: Optional[Graph] = None) -> DataPoint:
    """Snapshot the per-generation allocation counts only."""
    return DataPoint(fields=[
        Data.uint(f"gen{gen}.count", count, graph=graph)
        for gen, count in enumerate(gc.get_count())
    ])


def gc_data(graph: Optional[Graph] = None) -> DataPoint:
    """Snapshot per-generation collector counters."""
    counts = gc.get_count()
    fields = []
    for gen, stats in enumerate(gc.get_stats()):
        prefix = f"gen{gen}"
        fields.append(Data.uint(f"{prefix}.collections", stats.get("collections", 0), graph=graph))
        fields.append(Data.uint(f"{prefix}.collected", stats.get("collected", 0), graph=graph))
        fields.append(Data.uint(f"{prefix}.uncollectable", stats.get("uncollectable", 0), graph=graph))
        if gen < len(counts):
            fields.append(Data.uint(f"{prefix}.count", counts[gen], graph=graph))
    fields.append(Data.uint("frozen", gc.get_freeze_count(), graph=graph))
    return DataPoint(fields=fields)


def _gc_source(name, doc, snapshot, tags, registry) -> Source:
    if registry is None:
        registry = get_registry()
    graph = Graph(label="count", title=doc)
    return registry.push(name, tags=tags, fields=functools.partial(snapshot, graph), doc=doc)


def gc_quick_stat(tags=(), registry: Optional[SourceRegistry] = None) -> Source:
    """Declare a push source named "gc.quick" reporting gc.get_count()."""
    return _gc_source("gc.quick", GC_QUICK_DOC, gc_quick_data, tags, registry)


def gc_stat(tags=(), registry: Optional[SourceRegistry] = None) -> Source:
    """Declare a push source named "gc" whose field builder snapshots the collector."""
    return _gc_source("gc", GC_DOC, gc_data, tags, registry)


def push_gc_stats(instance: Instance) -> None:
    """Report one snapshot if the gc source is active. Works for either gc source."""
    push(instance, lambda data: data())
