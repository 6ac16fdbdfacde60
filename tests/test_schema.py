"""
Tests for tagged_metrics/schema.py: name validation, typed slots, fields, graphs.
"""

import pytest

from tagged_metrics.errors import ConfigurationError
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
    duration_field,
    find_graph,
    is_valid_name,
    reset_graphs,
    status_field,
    validate_name,
)


# ============================================================================
# TestNames
# ============================================================================

class TestNames:
    @pytest.mark.parametrize("name", ["cpu", "cpu.usage_1", "A.b.C_9", "_", "."])
    def test_accepts_valid_names(self, name):
        assert is_valid_name(name)
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["cpu usage", "", "cpu-usage", "cpu\n", "héllo", "a/b"])
    def test_rejects_invalid_names(self, name):
        assert not is_valid_name(name)
        with pytest.raises(ConfigurationError):
            validate_name(name)

    def test_rejects_non_strings(self):
        assert not is_valid_name(None)
        assert not is_valid_name(42)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_name("cpu usage", "tag name")


# ============================================================================
# TestTagSchema
# ============================================================================

class TestTagSchema:
    def test_render_preserves_declaration_order(self):
        schema = TagSchema([Tags.int("pid"), Tags.string("host")])
        assert schema.render((42, "foo.local")) == [("pid", "42"), ("host", "foo.local")]

    def test_domain(self):
        schema = TagSchema([Tags.int("pid"), Tags.string("host")])
        assert schema.domain == frozenset({"pid", "host"})
        assert schema.names == ["pid", "host"]
        assert len(schema) == 2

    def test_empty_schema(self):
        schema = TagSchema([])
        assert schema.render(()) == []
        assert schema.domain == frozenset()

    def test_too_few_values(self):
        schema = TagSchema([Tags.int("pid"), Tags.string("host")])
        with pytest.raises(ConfigurationError, match="expected 2 tag values, got 1"):
            schema.render((42,))

    def test_too_many_values(self):
        schema = TagSchema([Tags.int("pid")])
        with pytest.raises(ConfigurationError):
            schema.render((42, "extra"))

    def test_mistyped_value(self):
        schema = TagSchema([Tags.int("pid")])
        with pytest.raises(ConfigurationError, match="'pid' expects a int value"):
            schema.render(("42",))

    def test_bool_is_not_an_int(self):
        schema = TagSchema([Tags.int("pid")])
        with pytest.raises(ConfigurationError):
            schema.render((True,))

    def test_invalid_slot_name(self):
        with pytest.raises(ConfigurationError):
            TagSchema([Tags.string("host name")])

    def test_duplicate_slot_name(self):
        with pytest.raises(ConfigurationError, match="duplicate tag name"):
            TagSchema([Tags.string("host"), Tags.int("host")])

    def test_non_slot_entry(self):
        with pytest.raises(ConfigurationError):
            TagSchema([("pid", int)])

    def test_custom_renderer(self):
        schema = TagSchema([Tags.custom("level", lambda v: v.upper())])
        assert schema.render(("warn",)) == [("level", "WARN")]

    def test_custom_requires_callable(self):
        with pytest.raises(ConfigurationError):
            Tags.custom("level", "not callable")


# ============================================================================
# TestValueTypes
# ============================================================================

class TestValueTypes:
    def test_bool_renders_lowercase(self):
        schema = TagSchema([Tags.bool("cached")])
        assert schema.render((True,)) == [("cached", "true")]
        assert schema.render((False,)) == [("cached", "false")]

    def test_float_rendering(self):
        schema = TagSchema([Tags.float("ratio")])
        assert schema.render((3.5,)) == [("ratio", "3.5")]
        assert schema.render((2,)) == [("ratio", "2.0")]

    def test_unsigned_rejects_negative(self):
        for slot in (Tags.uint("n"), Tags.uint32("n"), Tags.uint64("n")):
            with pytest.raises(ConfigurationError):
                TagSchema([slot]).render((-1,))

    def test_int32_bounds(self):
        schema = TagSchema([Tags.int32("n")])
        assert schema.render((2**31 - 1,)) == [("n", str(2**31 - 1))]
        with pytest.raises(ConfigurationError):
            schema.render((2**31,))

    def test_uint64_bounds(self):
        schema = TagSchema([Tags.uint64("n")])
        assert schema.render((2**64 - 1,)) == [("n", str(2**64 - 1))]
        with pytest.raises(ConfigurationError):
            schema.render((2**64,))

    def test_int64_accepts_negative(self):
        schema = TagSchema([Tags.int64("n")])
        assert schema.render((-5,)) == [("n", "-5")]


# ============================================================================
# TestFields
# ============================================================================

class TestFields:
    def setup_method(self):
        reset_graphs()

    def test_field_schema_builds_data_point(self):
        schema = FieldSchema([Fields.float("cpu", unit="%"), Fields.int("mem", unit="KiB")])
        point = schema(3.5, 1024)
        assert isinstance(point, DataPoint)
        assert point.timestamp is None
        assert point.keys() == ["cpu", "mem"]
        assert point.rendered() == [("cpu", "3.5"), ("mem", "1024")]
        assert point.fields[0].unit == "%"

    def test_field_schema_timestamp(self):
        schema = FieldSchema([Fields.int("mem")])
        point = schema(1, timestamp="2026-10-18T04:13:00+00:00")
        assert point.timestamp == "2026-10-18T04:13:00+00:00"

    def test_field_schema_arity(self):
        schema = FieldSchema([Fields.int("mem")])
        with pytest.raises(ConfigurationError, match="expected 1 field values, got 2"):
            schema(1, 2)

    def test_free_form_constructors(self):
        point = Data.v([Data.float("cpu", 3.5), Data.int("mem", 1024), Data.string("os", "linux")])
        assert point.rendered() == [("cpu", "3.5"), ("mem", "1024"), ("os", "linux")]

    def test_free_form_type_check(self):
        with pytest.raises(ConfigurationError):
            Data.int("mem", "a lot")

    def test_free_form_key_validation(self):
        with pytest.raises(ConfigurationError):
            Data.int("mem used", 1)
        with pytest.raises(ConfigurationError):
            Field(key="bad key", value=1)

    def test_extended_appends_without_mutating(self):
        point = Data.v([Data.int("mem", 1)], timestamp="t")
        longer = point.extended([duration_field(12), status_field(Status.OK)])
        assert point.keys() == ["mem"]
        assert longer.keys() == ["mem", "duration", "status"]
        assert longer.timestamp == "t"

    def test_status_and_duration_fields(self):
        assert status_field(Status.OK).render() == "ok"
        assert status_field(Status.ERROR).render() == "error"
        d = duration_field(35)
        assert d.render() == "35"
        assert d.value_type is ValueType.INT64
        assert d.unit == "ms"


# ============================================================================
# TestGraphs
# ============================================================================

class TestGraphs:
    def setup_method(self):
        reset_graphs()

    def test_first_use_creates_graph(self):
        f = Data.float("cpu", 1.0, unit="%")
        g = f.resolve_graph()
        assert g.label == "cpu"
        assert g.unit == "%"

    def test_same_key_reuses_graph(self):
        g1 = Data.float("cpu", 1.0).resolve_graph()
        g2 = Data.float("cpu", 2.0).resolve_graph()
        assert g1 is g2
        assert find_graph("cpu") is g1

    def test_explicit_graph_wins(self):
        explicit = Graph(label="load", title="System load")
        f = Data.float("cpu", 1.0, graph=explicit)
        assert f.resolve_graph() is explicit
        assert find_graph("cpu") is not explicit

    def test_graph_ids_unique(self):
        ids = {Graph(label="x").id for _ in range(5)}
        assert len(ids) == 5

    def test_reset_graphs(self):
        g1 = find_graph("cpu")
        reset_graphs()
        assert find_graph("cpu") is not g1
