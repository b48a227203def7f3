"""Result type for operations that can fail during normal bot logic."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: Exception

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def ok(value: T = None) -> Ok[T]:
    return Ok(value)


def err(error: Exception) -> Err:
    return Err(error)


def is_ok(result: Result[Any]) -> bool:
    return isinstance(result, Ok)


def is_err(result: Result[Any]) -> bool:
    return isinstance(result, Err)


async def wrap_async(fn: Callable[[], Awaitable[T]]) -> Result[T]:
    """Await ``fn()`` and capture any exception it raises as an ``Err``."""
    try:
        return Ok(await fn())
    except Exception as e:
        return Err(e)


def unwrap(result: Result[T]) -> T:
    """Return the success value or raise the contained error.

    Meant for scripts and tests; adapters never unwrap.
    """
    if isinstance(result, Ok):
        return result.value
    raise result.error
