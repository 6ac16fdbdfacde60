"""
Source registry and activation predicate.

Every metric source is declared once through a registry. The registry keeps
all sources ever created, in creation order, and owns the activation
predicate: a source is active iff the predicate enables everything or one of
the source's tag names has been enabled.

Usage:
    from tagged_metrics.registry import get_registry
    from tagged_metrics.schema import Tags, Fields

    registry = get_registry()
    cpu = registry.push(
        "host.cpu",
        tags=[Tags.int("pid"), Tags.string("host")],
        fields=[Fields.float("cpu", unit="%"), Fields.int("mem", unit="KiB")],
    )
    registry.enable_tag("pid")      # cpu.active is now True
    instance = cpu.v(42, "foo.local")

The registry does no locking. Declaring sources, changing the predicate and
installing reporters must be serialised by the host application.
"""

import functools
import itertools
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, FrozenSet, List, Optional, Set, Tuple

from tagged_metrics.errors import ConfigurationError
from tagged_metrics.schema import DataPoint, TagSchema, as_field_builder, as_tag_schema
from tagged_metrics.utils.logger import get_logger

logger = get_logger(__name__)

# Process-wide and never reset, so ids stay unique across registry resets
_uids = itertools.count()


class Kind(Enum):
    PUSH = "push"
    TIMER = "timer"


@dataclass
class Predicate:
    """Global enable/disable rule evaluated against each source's tag domain."""
    enable_all: bool = False
    enabled_tags: Set[str] = field(default_factory=set)

    def allows(self, domain: FrozenSet[str]) -> bool:
        return self.enable_all or not self.enabled_tags.isdisjoint(domain)


@functools.total_ordering
@dataclass(eq=False, repr=False)
class Source:
    """
    A declared metric source.

    Only `active` changes after creation, and only through the registry's
    predicate updates or a manual enable()/disable().
    """
    uid: int
    name: str
    doc: str
    kind: Kind
    tag_schema: TagSchema
    fields: Callable[..., DataPoint]
    domain: FrozenSet[str]
    active: bool = False
    duration: bool = False
    status: bool = False

    def v(self, *values: Any) -> "Instance":
        """Build a tagged instance: exactly one value per tag slot, in declared order."""
        return Instance(source=self, tags=tuple(self.tag_schema.render(values)))

    tag = v

    @property
    def tags(self) -> List[str]:
        """The tag-name domain, sorted."""
        return sorted(self.domain)

    def is_active(self) -> bool:
        return self.active

    def __eq__(self, other):
        if not isinstance(other, Source):
            return NotImplemented
        return self.uid == other.uid

    def __lt__(self, other):
        if not isinstance(other, Source):
            return NotImplemented
        return self.uid < other.uid

    def __hash__(self):
        return hash(self.uid)

    def __repr__(self):
        return f"(src (name {json.dumps(self.name)}) (uid {self.uid}) (doc {json.dumps(self.doc)}))"


def compare(a: Source, b: Source) -> int:
    """-1, 0 or 1 by uid."""
    return (a.uid > b.uid) - (a.uid < b.uid)


@dataclass(frozen=True)
class Instance:
    """A source bound to one rendered tag set."""
    source: Source
    tags: Tuple[Tuple[str, str], ...]

    @property
    def active(self) -> bool:
        return self.source.active


class SourceRegistry:
    """Append-only list of sources plus the activation predicate that drives them."""

    def __init__(self):
        self._sources: List[Source] = []
        self.predicate = Predicate()

    def create(
        self,
        kind,
        name: str,
        tags=(),
        fields=None,
        doc: str = "undocumented",
        duration: Optional[bool] = None,
        status: Optional[bool] = None,
    ) -> Source:
        """
        Declare a new source.

        Args:
            kind: Kind.PUSH or Kind.TIMER (or "push" / "timer")
            name: Source name, conventionally prefixed with the owning package
            tags: TagSchema or list of tag slots
            fields: FieldSchema, list of field slots, or a callable returning a DataPoint
            doc: Human-readable description
            duration: Append a duration field when timed (defaults: timer True, push False)
            status: Append a status field when timed (defaults: timer True, push False)

        Raises:
            ConfigurationError: If a tag or field name is invalid or duplicated
        """
        try:
            kind = Kind(kind)
        except ValueError:
            raise ConfigurationError("unknown source kind", details={"kind": kind}) from None

        try:
            tag_schema = as_tag_schema(tags)
            builder = as_field_builder(fields)
        except ConfigurationError as e:
            logger.warning(f"Rejected declaration of source '{name}': {e}")
            raise

        timed = kind is Kind.TIMER
        source = Source(
            uid=next(_uids),
            name=name,
            doc=doc,
            kind=kind,
            tag_schema=tag_schema,
            fields=builder,
            domain=tag_schema.domain,
            active=self.predicate.allows(tag_schema.domain),
            duration=timed if duration is None else duration,
            status=timed if status is None else status,
        )
        self._sources.append(source)
        logger.debug(f"Declared {kind.value} source {source!r} (active={source.active})")
        return source

    def push(self, name: str, tags=(), fields=None, doc: str = "undocumented") -> Source:
        return self.create(Kind.PUSH, name, tags=tags, fields=fields, doc=doc)

    def timer(self, name: str, tags=(), fields=None, doc: str = "undocumented") -> Source:
        return self.create(Kind.TIMER, name, tags=tags, fields=fields, doc=doc)

    def sources(self) -> List[Source]:
        """Every source created through this registry, in creation order."""
        return list(self._sources)

    list = sources

    def __len__(self) -> int:
        return len(self._sources)

    def enable(self, source: Source) -> None:
        """Force one source on until the next predicate update."""
        source.active = True

    def disable(self, source: Source) -> None:
        """Force one source off until the next predicate update."""
        source.active = False

    def update_predicate(self, mutate: Callable[[Predicate], None]) -> None:
        """Apply mutate to the predicate, then recompute `active` on every source."""
        mutate(self.predicate)
        predicate = self.predicate
        for source in self._sources:
            source.active = predicate.allows(source.domain)

    def enable_tag(self, name: str) -> None:
        self.update_predicate(lambda p: p.enabled_tags.add(name))
        logger.info(f"Enabled metrics tag '{name}'")

    def disable_tag(self, name: str) -> None:
        self.update_predicate(lambda p: p.enabled_tags.discard(name))
        logger.info(f"Disabled metrics tag '{name}'")

    def enable_all(self) -> None:
        def mutate(p: Predicate) -> None:
            p.enable_all = True
        self.update_predicate(mutate)
        logger.info("Enabled all metrics sources")

    def disable_all(self) -> None:
        def mutate(p: Predicate) -> None:
            p.enable_all = False
            p.enabled_tags.clear()
        self.update_predicate(mutate)
        logger.info("Disabled all metrics sources")

    def reset(self) -> None:
        """Forget every source and clear the predicate."""
        self._sources.clear()
        self.predicate = Predicate()


_registry = SourceRegistry()


def get_registry() -> SourceRegistry:
    """The process-wide default registry."""
    return _registry


def create_source(kind, name: str, tags=(), fields=None, doc: str = "undocumented",
                  duration: Optional[bool] = None, status: Optional[bool] = None) -> Source:
    return _registry.create(kind, name, tags=tags, fields=fields, doc=doc,
                            duration=duration, status=status)


def push_source(name: str, tags=(), fields=None, doc: str = "undocumented") -> Source:
    return _registry.push(name, tags=tags, fields=fields, doc=doc)


def timer_source(name: str, tags=(), fields=None, doc: str = "undocumented") -> Source:
    return _registry.timer(name, tags=tags, fields=fields, doc=doc)


def sources() -> List[Source]:
    return _registry.sources()


def enable(source: Source) -> None:
    _registry.enable(source)


def disable(source: Source) -> None:
    _registry.disable(source)


def enable_tag(name: str) -> None:
    _registry.enable_tag(name)


def disable_tag(name: str) -> None:
    _registry.disable_tag(name)


def enable_all() -> None:
    _registry.enable_all()


def disable_all() -> None:
    _registry.disable_all()


def reset() -> None:
    _registry.reset()
