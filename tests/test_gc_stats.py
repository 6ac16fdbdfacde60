"""
Tests for tagged_metrics/gc_stats.py: the garbage collector sources.
"""

from unittest.mock import patch

from tagged_metrics.gc_stats import (
    GC_DOC,
    GC_QUICK_DOC,
    gc_data,
    gc_quick_data,
    gc_quick_stat,
    gc_stat,
    push_gc_stats,
)
from tagged_metrics.registry import SourceRegistry
from tagged_metrics.reporters import MemoryReporter
from tagged_metrics.reporting import NopReporter, set_reporter
from tagged_metrics.schema import Graph, Tags, is_valid_name


class TestGcStats:
    def setup_method(self):
        self.registry = SourceRegistry()
        self.mem = MemoryReporter()
        set_reporter(self.mem)

    def teardown_method(self):
        set_reporter(NopReporter())

    def test_declares_push_source(self):
        src = gc_stat(tags=[Tags.string("host")], registry=self.registry)
        assert src.name == "gc"
        assert src.doc == GC_DOC
        assert src.duration is False
        assert self.registry.sources() == [src]

    def test_field_names_valid_and_values_non_negative(self):
        point = gc_data()
        assert point.fields
        for f in point.fields:
            assert is_valid_name(f.key)
            assert isinstance(f.value, int) and f.value >= 0
        assert "gen0.collections" in point.keys()
        assert "frozen" in point.keys()

    def test_fields_share_one_graph(self):
        graph = Graph(label="count", title=GC_DOC)
        point = gc_data(graph)
        assert {f.resolve_graph().id for f in point.fields} == {graph.id}

    def test_inactive_does_not_snapshot(self):
        src = gc_stat(tags=[Tags.string("host")], registry=self.registry)
        with patch("tagged_metrics.gc_stats.gc.get_stats") as get_stats:
            push_gc_stats(src.v("foo.local"))
        get_stats.assert_not_called()
        assert self.mem.records == []

    def test_active_reports_snapshot(self):
        src = gc_stat(tags=[Tags.string("host")], registry=self.registry)
        self.registry.enable_tag("host")
        push_gc_stats(src.v("foo.local"))
        record = self.mem.records[0]
        assert record.source == "gc"
        assert record.tags == [("host", "foo.local")]
        keys = [k for k, _ in record.fields]
        assert "gen0.collections" in keys
        graphs = {f.resolve_graph().id for f in record.data.fields}
        assert len(graphs) == 1

    def test_quick_source_reports_counts_only(self):
        src = gc_quick_stat(tags=[Tags.string("host")], registry=self.registry)
        assert src.name == "gc.quick"
        assert src.doc == GC_QUICK_DOC
        self.registry.enable_all()
        with patch("tagged_metrics.gc_stats.gc.get_stats") as get_stats:
            push_gc_stats(src.v("foo.local"))
        get_stats.assert_not_called()
        keys = [k for k, _ in self.mem.records[0].fields]
        assert keys == [f"gen{i}.count" for i in range(len(keys))]

    def test_quick_data_matches_get_count(self):
        with patch("tagged_metrics.gc_stats.gc.get_count", return_value=(7, 2, 0)):
            point = gc_quick_data()
        assert point.rendered() == [("gen0.count", "7"), ("gen1.count", "2"), ("gen2.count", "0")]

    def test_quick_and_full_sources_coexist(self):
        quick = gc_quick_stat(registry=self.registry)
        full = gc_stat(registry=self.registry)
        assert self.registry.sources() == [quick, full]
        assert quick != full
