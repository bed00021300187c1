"""Outcome returned by compute callbacks.

A callback declares what should happen to the slot once it returns:

    cell.compute(lambda view: Replace(view.value * 2) if view else Remove())
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ComputeResult(Generic[T]):
    """Base of the three outcomes; not meant to be instantiated directly."""

    __slots__ = ()


@dataclass(frozen=True)
class Replace(ComputeResult[T]):
    """Store ``value`` in the slot, replacing whatever was there."""
    value: T


@dataclass(frozen=True)
class Remove(ComputeResult[Any]):
    """Empty the slot (no-op when it is already empty)."""


@dataclass(frozen=True)
class DoNothing(ComputeResult[Any]):
    """Leave the slot as it is."""


def check_outcome(outcome: object) -> ComputeResult:
    if not isinstance(outcome, (Replace, Remove, DoNothing)):
        raise TypeError(
            f"compute callback must return Replace, Remove or DoNothing, got {type(outcome).__name__}"
        )
    return outcome
