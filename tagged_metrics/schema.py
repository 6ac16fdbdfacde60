"""
Typed tag and field schemas for metric sources.

A schema is an ordered, fixed-arity list of named typed slots declared once,
when a source is created. Supplying values to a schema renders each one
through its slot's type-specific renderer, in declaration order.

Usage:
    from tagged_metrics.schema import Tags, Fields, TagSchema, FieldSchema

    tags = TagSchema([Tags.int("pid"), Tags.string("host")])
    tags.render((42, "foo.local"))
    # -> [("pid", "42"), ("host", "foo.local")]

    fields = FieldSchema([Fields.float("cpu", unit="%"), Fields.int("mem", unit="KiB")])
    point = fields(3.5, 1024)
    point.rendered()
    # -> [("cpu", "3.5"), ("mem", "1024")]

Tag names and field keys must match [A-Za-z0-9_.]+; anything else is a
ConfigurationError at declaration time.
"""

import itertools
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from tagged_metrics.errors import ConfigurationError
from tagged_metrics.utils.logger import get_logger

logger = get_logger(__name__)

VALID_NAME = re.compile(r"[A-Za-z0-9_.]+")

Renderer = Callable[[Any], str]


def is_valid_name(name: Any) -> bool:
    """True if name is a non-empty string made only of [A-Za-z0-9_.]."""
    return isinstance(name, str) and VALID_NAME.fullmatch(name) is not None


def validate_name(name: Any, what: str = "name") -> str:
    """Return name unchanged, or raise ConfigurationError if it is not valid."""
    if not is_valid_name(name):
        raise ConfigurationError(
            f"invalid {what}: must match [A-Za-z0-9_.]+",
            details={"name": name},
        )
    return name


# =============================================================================
# Value types
# =============================================================================

class ValueType(Enum):
    """The value types a tag slot or field can carry."""
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT32 = "uint32"
    UINT64 = "uint64"
    CUSTOM = "custom"


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _int_range(lo: int, hi: int) -> Callable[[Any], bool]:
    return lambda v: _is_int(v) and lo <= v <= hi


_CHECKS: Dict[ValueType, Callable[[Any], bool]] = {
    ValueType.BOOL: lambda v: isinstance(v, bool),
    ValueType.INT: _is_int,
    ValueType.FLOAT: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    ValueType.STRING: lambda v: isinstance(v, str),
    ValueType.INT32: _int_range(-2**31, 2**31 - 1),
    ValueType.INT64: _int_range(-2**63, 2**63 - 1),
    ValueType.UINT: lambda v: _is_int(v) and v >= 0,
    ValueType.UINT32: _int_range(0, 2**32 - 1),
    ValueType.UINT64: _int_range(0, 2**64 - 1),
    ValueType.CUSTOM: lambda v: True,
}

_RENDERERS: Dict[ValueType, Renderer] = {
    ValueType.BOOL: lambda v: "true" if v else "false",
    ValueType.FLOAT: lambda v: repr(float(v)),
    ValueType.STRING: lambda v: v,
}


def check_value(value_type: ValueType, value: Any) -> bool:
    """True if value is acceptable for value_type."""
    return _CHECKS[value_type](value)


def render_value(value_type: ValueType, value: Any, renderer: Optional[Renderer] = None) -> str:
    """Render value to its reported string form."""
    if renderer is not None:
        return renderer(value)
    return _RENDERERS.get(value_type, str)(value)


# =============================================================================
# Graphs
# =============================================================================

_graph_ids = itertools.count(1)


@dataclass(frozen=True)
class Graph:
    """Plotting annotation shared by fields that belong on the same chart."""
    label: str
    unit: Optional[str] = None
    title: Optional[str] = None
    id: int = field(default_factory=lambda: next(_graph_ids))


# Process-wide: field key -> graph created the first time that key was seen
_graphs: Dict[str, Graph] = {}


def find_graph(key: str, unit: Optional[str] = None) -> Graph:
    """Return the cached graph for key, creating it on first use."""
    graph = _graphs.get(key)
    if graph is None:
        graph = Graph(label=key, unit=unit)
        _graphs[key] = graph
    return graph


def reset_graphs() -> None:
    """Forget every cached per-key graph."""
    _graphs.clear()


# =============================================================================
# Fields and data points
# =============================================================================

@dataclass(frozen=True)
class Field:
    """A single named, typed value within one data point."""
    key: str
    value: Any
    value_type: ValueType = ValueType.STRING
    unit: Optional[str] = None
    doc: Optional[str] = None
    graph: Optional[Graph] = None
    renderer: Optional[Renderer] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        validate_name(self.key, "field key")

    def render(self) -> str:
        return render_value(self.value_type, self.value, self.renderer)

    def resolve_graph(self) -> Graph:
        """The explicit graph if one was given, else the shared graph for this key."""
        if self.graph is not None:
            return self.graph
        return find_graph(self.key, self.unit)


@dataclass
class DataPoint:
    """One set of fields reported through a source, optionally timestamped (RFC3339 UTC)."""
    fields: List[Field] = field(default_factory=list)
    timestamp: Optional[str] = None

    def keys(self) -> List[str]:
        return [f.key for f in self.fields]

    def rendered(self) -> List[Tuple[str, str]]:
        """(key, rendered value) pairs in field order."""
        return [(f.key, f.render()) for f in self.fields]

    def extended(self, extra: Sequence[Field]) -> "DataPoint":
        """A copy with extra fields appended after the existing ones."""
        return DataPoint(fields=list(self.fields) + list(extra), timestamp=self.timestamp)


def _typed_field(value_type: ValueType):
    def build(key: str, value: Any, unit: Optional[str] = None, doc: Optional[str] = None,
              graph: Optional[Graph] = None) -> Field:
        if not check_value(value_type, value):
            raise ConfigurationError(
                f"field '{key}' expects a {value_type.value} value",
                details={"value": value},
            )
        return Field(key=key, value=value, value_type=value_type, unit=unit, doc=doc, graph=graph)
    build.__name__ = value_type.value
    return build


class Data:
    """
    Free-form field constructors, for data builders that are not a FieldSchema.

        Data.float("cpu", 3.5, unit="%")
        Data.v([Data.int("mem", 1024)], timestamp="2026-10-18T04:13:00+00:00")
    """
    string = staticmethod(_typed_field(ValueType.STRING))
    bool = staticmethod(_typed_field(ValueType.BOOL))
    float = staticmethod(_typed_field(ValueType.FLOAT))
    int = staticmethod(_typed_field(ValueType.INT))
    int32 = staticmethod(_typed_field(ValueType.INT32))
    int64 = staticmethod(_typed_field(ValueType.INT64))
    uint = staticmethod(_typed_field(ValueType.UINT))
    uint32 = staticmethod(_typed_field(ValueType.UINT32))
    uint64 = staticmethod(_typed_field(ValueType.UINT64))

    @staticmethod
    def custom(key: str, value: Any, renderer: Renderer, unit: Optional[str] = None,
               doc: Optional[str] = None, graph: Optional[Graph] = None) -> Field:
        return Field(key=key, value=value, value_type=ValueType.CUSTOM, unit=unit, doc=doc,
                     graph=graph, renderer=renderer)

    @staticmethod
    def v(fields: Iterable[Field], timestamp: Optional[str] = None) -> DataPoint:
        return DataPoint(fields=list(fields), timestamp=timestamp)


# =============================================================================
# Status and duration fields appended by timers
# =============================================================================

class Status(Enum):
    OK = "ok"
    ERROR = "error"


def _render_status(status: Status) -> str:
    return status.value


def status_field(status: Status) -> Field:
    return Field(key="status", value=status, value_type=ValueType.CUSTOM, renderer=_render_status)


def duration_field(elapsed_ms: int) -> Field:
    return Field(key="duration", value=int(elapsed_ms), value_type=ValueType.INT64, unit="ms")


# =============================================================================
# Slots and schemas
# =============================================================================

@dataclass(frozen=True)
class Slot:
    """A named, typed position in a tag or field schema."""
    name: str
    value_type: ValueType
    renderer: Optional[Renderer] = field(default=None, repr=False, compare=False)
    unit: Optional[str] = None
    doc: Optional[str] = None
    graph: Optional[Graph] = None

    def check(self, value: Any) -> None:
        if not check_value(self.value_type, value):
            raise ConfigurationError(
                f"'{self.name}' expects a {self.value_type.value} value",
                details={"value": value, "type": type(value).__name__},
            )

    def render(self, value: Any) -> str:
        self.check(value)
        return render_value(self.value_type, value, self.renderer)

    def field(self, value: Any) -> Field:
        self.check(value)
        return Field(key=self.name, value=value, value_type=self.value_type, unit=self.unit,
                     doc=self.doc, graph=self.graph, renderer=self.renderer)


def _slot(value_type: ValueType):
    def build(name: str, unit: Optional[str] = None, doc: Optional[str] = None,
              graph: Optional[Graph] = None) -> Slot:
        return Slot(name=name, value_type=value_type, unit=unit, doc=doc, graph=graph)
    build.__name__ = value_type.value
    return build


def _custom_slot(name: str, renderer: Renderer, unit: Optional[str] = None,
                 doc: Optional[str] = None, graph: Optional[Graph] = None) -> Slot:
    if not callable(renderer):
        raise ConfigurationError(f"custom slot '{name}' needs a callable renderer")
    return Slot(name=name, value_type=ValueType.CUSTOM, renderer=renderer, unit=unit, doc=doc,
                graph=graph)


class Tags:
    """
    Tag slot constructors.

        TagSchema([Tags.int("pid"), Tags.string("host")])
    """
    string = staticmethod(_slot(ValueType.STRING))
    bool = staticmethod(_slot(ValueType.BOOL))
    float = staticmethod(_slot(ValueType.FLOAT))
    int = staticmethod(_slot(ValueType.INT))
    int32 = staticmethod(_slot(ValueType.INT32))
    int64 = staticmethod(_slot(ValueType.INT64))
    uint = staticmethod(_slot(ValueType.UINT))
    uint32 = staticmethod(_slot(ValueType.UINT32))
    uint64 = staticmethod(_slot(ValueType.UINT64))
    custom = staticmethod(_custom_slot)


# Field slots take the same constructors; unit/doc/graph only matter for fields.
Fields = Tags


class _Schema:
    what = "slot"

    def __init__(self, slots: Iterable[Slot] = ()):
        self.slots: Tuple[Slot, ...] = tuple(slots)
        seen = set()
        for slot in self.slots:
            if not isinstance(slot, Slot):
                raise ConfigurationError(
                    f"{self.what} schema entries must be Slot objects",
                    details={"entry": slot},
                )
            validate_name(slot.name, f"{self.what} name")
            if slot.name in seen:
                raise ConfigurationError(f"duplicate {self.what} name", details={"name": slot.name})
            seen.add(slot.name)
        self.domain: FrozenSet[str] = frozenset(seen)

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self):
        return iter(self.slots)

    def __repr__(self) -> str:
        inner = ", ".join(f"{s.name}:{s.value_type.value}" for s in self.slots)
        return f"{type(self).__name__}([{inner}])"

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.slots]

    def _check_arity(self, values: Sequence[Any]) -> None:
        if len(values) != len(self.slots):
            raise ConfigurationError(
                f"expected {len(self.slots)} {self.what} values, got {len(values)}",
                details={"slots": self.names},
            )


class TagSchema(_Schema):
    """Ordered tag slots of a source; render() builds a tag instance."""
    what = "tag"

    def render(self, values: Sequence[Any]) -> List[Tuple[str, str]]:
        self._check_arity(values)
        return [(slot.name, slot.render(v)) for slot, v in zip(self.slots, values)]


class FieldSchema(_Schema):
    """Ordered field slots of a source; calling it builds a DataPoint."""
    what = "field"

    def __call__(self, *values: Any, timestamp: Optional[str] = None) -> DataPoint:
        self._check_arity(values)
        return DataPoint(
            fields=[slot.field(v) for slot, v in zip(self.slots, values)],
            timestamp=timestamp,
        )


def as_tag_schema(tags: Any) -> TagSchema:
    if isinstance(tags, TagSchema):
        return tags
    if isinstance(tags, FieldSchema):
        raise ConfigurationError("a FieldSchema cannot be used as tags")
    return TagSchema(tags or ())


def as_field_builder(fields: Any) -> Callable[..., DataPoint]:
    """Accept a FieldSchema, a list of slots, or any callable returning a DataPoint."""
    if fields is None:
        return FieldSchema(())
    if isinstance(fields, (list, tuple)):
        return FieldSchema(fields)
    if not callable(fields):
        raise ConfigurationError(
            "fields must be a FieldSchema, a list of slots or a callable",
            details={"fields": fields},
        )
    return fields
