"""Three-way query outcome.

claude-cli-stream models v0.1.0

An Outcome is the non-throwing terminal value of a query:

    outcome = await client.query_outcome("Explain this repo")
    if isinstance(outcome, Success):
        handle(outcome.value)
    elif isinstance(outcome, Timeout):
        print(f"Timed out after {outcome.duration_ms}ms")
    else:
        log(outcome.cause)

Every variant also exposes the same helper methods (map, get_or_none,
get_or_raise, on_success, on_error, on_timeout), so callers can chain
without branching.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Generic, TypeVar, Union

from ..errors import CLITimeoutError

if TYPE_CHECKING:
    from .messages import Message

__all__ = [
    "Success",
    "Error",
    "Timeout",
    "Outcome",
]

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Success(Generic[T]):
    """The query completed.

    Attributes:
        value: The result value
        messages: All messages received during the query
        duration_ms: Total duration in milliseconds
    """

    value: T
    messages: list[Message] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def is_success(self) -> bool:
        return True

    def map(self, transform: Callable[[T], R]) -> Success[R]:
        return Success(transform(self.value), self.messages, self.duration_ms)

    def get_or_none(self) -> T | None:
        return self.value

    def get_or_raise(self) -> T:
        return self.value

    def on_success(self, block: Callable[[T], object]) -> Success[T]:
        block(self.value)
        return self

    def on_error(self, block: Callable[[Exception], object]) -> Success[T]:
        return self

    def on_timeout(self, block: Callable[[int], object]) -> Success[T]:
        return self


@dataclass(frozen=True)
class Error:
    """The query failed.

    Attributes:
        cause: The exception that ended the query
        partial_messages: Messages received before the failure
        duration_ms: Duration until the failure in milliseconds
    """

    cause: Exception
    partial_messages: list[Message] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def is_success(self) -> bool:
        return False

    def map(self, transform: Callable[[object], R]) -> Error:
        return self

    def get_or_none(self) -> None:
        return None

    def get_or_raise(self) -> None:
        raise self.cause

    def on_success(self, block: Callable[[object], object]) -> Error:
        return self

    def on_error(self, block: Callable[[Exception], object]) -> Error:
        block(self.cause)
        return self

    def on_timeout(self, block: Callable[[int], object]) -> Error:
        return self


@dataclass(frozen=True)
class Timeout:
    """The query deadline expired.

    Attributes:
        duration_ms: Elapsed time until the deadline fired, in milliseconds
        partial_messages: Messages received before the deadline
    """

    duration_ms: int
    partial_messages: list[Message] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return False

    def map(self, transform: Callable[[object], R]) -> Timeout:
        return self

    def get_or_none(self) -> None:
        return None

    def get_or_raise(self) -> None:
        raise CLITimeoutError(
            self.duration_ms, f"Query timed out after {self.duration_ms}ms"
        )

    def on_success(self, block: Callable[[object], object]) -> Timeout:
        return self

    def on_error(self, block: Callable[[Exception], object]) -> Timeout:
        return self

    def on_timeout(self, block: Callable[[int], object]) -> Timeout:
        block(self.duration_ms)
        return self


Outcome = Union[Success[T], Error, Timeout]
