"""Ok/Err result values.

Every pipeline step that talks to a tool, a remote or the filesystem returns
a Result instead of raising, so a failing step can be reported against its
target job without unwinding the other jobs.

Usage:
    match builder.build(commit):
        case Ok(artifact):
            publish(artifact)
        case Err(error):
            report(error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying `value`."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying `error`."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Union[Ok[T], Err[E]]
