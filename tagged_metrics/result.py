"""
Success/failure values for computations wrapped with rrun().

A body passed to rrun() returns Ok(value) or Err(error). Err is reported with
status=error but handed back to the caller, not raised.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    is_ok: ClassVar[bool] = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E
    is_ok: ClassVar[bool] = False

    def unwrap(self) -> Any:
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"unwrap() called on Err({self.error!r})")


Result = Union[Ok[T], Err[E]]
