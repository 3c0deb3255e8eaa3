"""
Explicit result values for handler pipelines.

Each stage of a handler (authenticate, validate, store, format) returns
``Ok(value)`` or ``Err(error)``. Stages are chained with ``and_then`` so the
first failure short-circuits the remaining stages.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from .errors import AppError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        return fn(self.value)

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        return Ok(fn(self.value))

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: AppError

    @property
    def is_ok(self) -> bool:
        return False

    def and_then(self, fn: Callable[[Any], "Result[U]"]) -> "Err":
        return self

    def map(self, fn: Callable[[Any], U]) -> "Err":
        return self

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok[T], Err]


def capture(fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Result[T]":
    """
    Run ``fn`` and wrap its outcome.

    AppError subclasses become ``Err``; anything else propagates to the
    handler boundary, which reports it as an internal error.
    """
    try:
        return Ok(fn(*args, **kwargs))
    except AppError as e:
        return Err(e)
