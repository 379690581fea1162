"""Result values exchanged at the wrapped-operation boundary.

Operations that prefer returning their failure over raising it can return
``Ok(value)`` or ``Err(error)``; the synthesis entry points accept both.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeAlias, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error`` (an exception, a message, ...)."""

    error: E

    def describe(self) -> str:
        """Textual failure reason handed to the model."""
        if isinstance(self.error, BaseException):
            text = str(self.error)
            return f"{type(self.error).__name__}: {text}" if text else type(self.error).__name__
        return str(self.error)


Result: TypeAlias = Union[Ok[T], Err[E]]


def ok_type(annotation: Any) -> Any | None:
    """Return ``T`` from an ``Ok[T] | Err[E]`` annotation, else None."""
    for member in get_args(annotation) if get_origin(annotation) is Union else (annotation,):
        if get_origin(member) is Ok:
            return get_args(member)[0]
    return None


__all__ = ["Err", "Ok", "Result", "ok_type"]
