"""
Call-site operations: push, add, run, rrun, arun and the timed decorator.

Every entry point checks `source.active` first. When the source is
inactive neither the tag values nor the data builder are touched, so a
disabled source costs one attribute lookup. When it is active the data
point goes to the installed reporter synchronously, in the caller's thread.

Usage:
    from tagged_metrics import push, run

    push(instance, lambda data: data(3.5, 1024))

    # Times the body; appends duration (ms) and status (ok/error) fields
    rows = run(db_timer, ("select",), None, lambda: conn.execute(query))

Tag values passed to add/run/rrun/arun/timed are either a tuple (or list)
with one value per tag slot, or a callable that receives the source's tag
builder: run(db_timer, lambda t: t(query.kind), None, body).

Faults raised by the wrapped body are reported with status=error and then
re-raised unchanged. Faults raised by the reporter propagate to the caller.
"""

import functools
import inspect
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tagged_metrics import reporting
from tagged_metrics.errors import ConfigurationError
from tagged_metrics.registry import Instance, Source
from tagged_metrics.result import Err
from tagged_metrics.schema import DataPoint, Status, duration_field, status_field

T = TypeVar("T")

Produce = Optional[Callable[[Any], DataPoint]]


def _ack() -> None:
    pass


def _unit() -> None:
    return None


def _deliver(instance: Instance, data: DataPoint, continuation: Callable[[], T]) -> T:
    return reporting.reporter().report(
        list(instance.tags), data, _ack, instance.source, continuation
    )


def _tagged(source: Source, tags) -> Instance:
    """Build the instance for an active source from a tag tuple or tag builder."""
    if callable(tags):
        return tags(source.v)
    if isinstance(tags, (tuple, list)):
        return source.v(*tags)
    raise ConfigurationError(
        f"tag values for source '{source.name}' must be a tuple or a builder callable",
        details={"got": type(tags).__name__},
    )


def push(instance: Instance, produce: Callable[[Any], DataPoint]) -> None:
    """
    Report one data point through an instance.

    produce receives the source's field builder and returns a DataPoint. It
    is only called when the source is active.
    """
    source = instance.source
    if not source.active:
        return None
    data = produce(source.fields)
    return _deliver(instance, data, _unit)


def add(source: Source, tags, produce: Callable[[Any], DataPoint]) -> None:
    """
    Like push(), but the tag values are only rendered when the source is active.

    tags is either a tuple of values for the source's tag slots, or a
    callable that receives the tag builder: add(src, lambda t: t(42, "foo"), ...).
    """
    if not source.active:
        return None
    return push(_tagged(source, tags), produce)


def _timed_data(instance: Instance, produce: Produce, elapsed: int, status: Status) -> DataPoint:
    source = instance.source
    data = produce(source.fields) if produce is not None else DataPoint()
    extra = []
    if source.duration:
        extra.append(duration_field(elapsed))
    if source.status:
        extra.append(status_field(status))
    return data.extended(extra) if extra else data


def _record(instance: Instance, produce: Produce, t0: int, status: Status,
            continuation: Callable[[], T]) -> T:
    elapsed = reporting.now() - t0
    data = _timed_data(instance, produce, elapsed, status)
    return _deliver(instance, data, continuation)


def run(source: Source, tags, produce: Produce, body: Callable[[], T]) -> T:
    """
    Evaluate body(), timing it and recording whether it raised.

    Inactive source: just returns body(). Active source: renders the tags,
    reports one data point (user fields, then duration, then status) and
    returns body's value, or re-raises body's exception after reporting
    status=error.
    """
    if not source.active:
        return body()
    instance = _tagged(source, tags)
    t0 = reporting.now()
    try:
        result = body()
    except BaseException:
        _record(instance, produce, t0, Status.ERROR, _unit)
        raise
    return _record(instance, produce, t0, Status.OK, lambda: result)


def rrun(source: Source, tags, produce: Produce, body: Callable[[], Any]) -> Any:
    """
    Like run(), for bodies that return Ok(...) or Err(...).

    Ok -> status=ok, returned. Err -> status=error, returned (not raised).
    A raised exception -> status=error, re-raised.
    """
    if not source.active:
        return body()
    instance = _tagged(source, tags)
    t0 = reporting.now()
    try:
        result = body()
    except BaseException:
        _record(instance, produce, t0, Status.ERROR, _unit)
        raise
    status = Status.ERROR if isinstance(result, Err) else Status.OK
    return _record(instance, produce, t0, status, lambda: result)


async def arun(source: Source, tags, produce: Produce,
               body: Callable[[], Awaitable[T]]) -> T:
    """run() for coroutine functions: awaits body() inside the timing window."""
    if not source.active:
        return await body()
    instance = _tagged(source, tags)
    t0 = reporting.now()
    try:
        result = await body()
    except BaseException:
        _record(instance, produce, t0, Status.ERROR, _unit)
        raise
    return _record(instance, produce, t0, Status.OK, lambda: result)


def timed(source: Source, tags=(), produce: Produce = None):
    """
    Decorator form of run()/arun().

        @timed(db_timer, ("select",))
        def fetch_rows(query): ...
    """
    def decorator(fn):
        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                return await arun(source, tags, produce, lambda: fn(*args, **kwargs))
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            return run(source, tags, produce, lambda: fn(*args, **kwargs))
        return wrapper
    return decorator
