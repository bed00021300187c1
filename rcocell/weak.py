"""Non-owning handle to a cell's slot.

A weak reference never keeps the slot alive. Each operation first promotes
the handle to a temporary :class:`~rcocell.cell.RcOCell`; once the last
strong owner is gone, the direct forms panic and the ``try_*`` forms raise
:class:`~rcocell.errors.Dropped`.
"""

import weakref
from typing import Any, Callable, Generic, Optional, TypeVar

from .cell import RcOCell, render
from .compute import ComputeResult
from .errors import Dropped, panic_on_error
from .slot import Ref, RefMut, Slot

T = TypeVar("T")
X = TypeVar("X")


class WeakRcOCell(Generic[T]):
    """Weak counterpart of :class:`RcOCell`, obtained with ``cell.downgrade()``."""

    __slots__ = ("_ref",)

    def __init__(self, slot: Slot[T]):
        self._ref = weakref.ref(slot)

    @classmethod
    def from_slot(cls, slot: Slot[T]) -> "WeakRcOCell[T]":
        return cls(slot)

    @classmethod
    def from_cell(cls, cell: RcOCell[T]) -> "WeakRcOCell[T]":
        """Downgrade ``cell`` and release it."""
        try:
            return cell.downgrade()
        finally:
            cell.drop()

    def into_slot(self) -> Slot[T]:
        """Return the raw slot; raises :class:`Dropped` if it is gone."""
        return self._live()

    def _live(self) -> Slot[T]:
        slot = self._ref()
        if slot is None:
            raise Dropped()
        return slot

    def try_upgrade(self) -> RcOCell[T]:
        return RcOCell.from_slot(self._live())

    def upgrade(self) -> RcOCell[T]:
        return self._strong("upgrade")

    def _strong(self, operation: str) -> RcOCell[T]:
        with panic_on_error(f"WeakRcOCell.{operation}"):
            return self.try_upgrade()

    def clone(self) -> "WeakRcOCell[T]":
        clone = WeakRcOCell.__new__(WeakRcOCell)
        clone._ref = self._ref
        return clone

    def __copy__(self):
        return self.clone()

    def is_dropped(self) -> bool:
        return self._ref() is None

    def _peek(self) -> Optional[Slot[T]]:
        return self._ref()

    def ptr_eq(self, other) -> bool:
        slot = self._ref()
        return slot is not None and slot is other._peek()

    def is_some(self) -> bool:
        """False once the slot is gone. Never raises."""
        slot = self._ref()
        return slot is not None and slot.is_some()

    def is_none(self) -> bool:
        return not self.is_some()

    def try_borrow(self) -> Ref[T]:
        """The returned guard keeps the slot alive until it is released."""
        return self.try_upgrade().try_borrow()

    def borrow(self) -> Ref[T]:
        return self._strong("borrow").borrow()

    def try_borrow_mut(self) -> RefMut[T]:
        return self.try_upgrade().try_borrow_mut()

    def borrow_mut(self) -> RefMut[T]:
        return self._strong("borrow_mut").borrow_mut()

    def try_compute(self, fn: Callable[[Optional[RefMut[T]]], ComputeResult]) -> None:
        self.try_upgrade().try_compute(fn)

    def compute(self, fn: Callable[[Optional[RefMut[T]]], ComputeResult]) -> None:
        self._strong("compute").compute(fn)

    def try_compute_if_present(self, fn: Callable[[RefMut[T]], ComputeResult]) -> bool:
        return self.try_upgrade().try_compute_if_present(fn)

    def compute_if_present(self, fn: Callable[[RefMut[T]], ComputeResult]) -> bool:
        return self._strong("compute_if_present").compute_if_present(fn)

    def try_compute_if_absent(self, fn: Callable[[], Optional[T]]) -> bool:
        """Raises :class:`Dropped` for a dead slot; contention still returns False."""
        return self.try_upgrade().try_compute_if_absent(fn)

    def compute_if_absent(self, fn: Callable[[], Optional[T]]) -> bool:
        return self._strong("compute_if_absent").compute_if_absent(fn)

    def try_if_present(self, fn: Callable[[T], Any]) -> bool:
        return self.try_upgrade().try_if_present(fn)

    def if_present(self, fn: Callable[[T], Any]) -> bool:
        return self._strong("if_present").if_present(fn)

    def try_if_present_mut(self, fn: Callable[[RefMut[T]], Any]) -> bool:
        return self.try_upgrade().try_if_present_mut(fn)

    def if_present_mut(self, fn: Callable[[RefMut[T]], Any]) -> bool:
        return self._strong("if_present_mut").if_present_mut(fn)

    def try_get_and_clear(self) -> T:
        return self.try_upgrade().try_get_and_clear()

    def get_and_clear(self) -> T:
        return self._strong("get_and_clear").get_and_clear()

    def try_replace(self, value: T) -> T:
        return self.try_upgrade().try_replace(value)

    def replace(self, value: T) -> T:
        return self._strong("replace").replace(value)

    def try_set(self, value: T) -> Optional[T]:
        return self.try_upgrade().try_set(value)

    def set(self, value: T) -> Optional[T]:
        return self._strong("set").set(value)

    def try_clear(self) -> Optional[T]:
        return self.try_upgrade().try_clear()

    def clear(self) -> Optional[T]:
        return self._strong("clear").clear()

    def try_map(self, fn: Callable[[T], X]) -> Optional[X]:
        return self.try_upgrade().try_map(fn)

    def map(self, fn: Callable[[T], X]) -> Optional[X]:
        return self._strong("map").map(fn)

    def try_map_mut(self, fn: Callable[[RefMut[T]], X]) -> Optional[X]:
        return self.try_upgrade().try_map_mut(fn)

    def map_mut(self, fn: Callable[[RefMut[T]], X]) -> Optional[X]:
        return self._strong("map_mut").map_mut(fn)

    def try_get_and_clone(self) -> T:
        return self.try_upgrade().try_get_and_clone()

    def get_and_clone(self) -> T:
        return self._strong("get_and_clone").get_and_clone()

    def try_swap(self, other) -> None:
        self.try_upgrade().try_swap(other)

    def swap(self, other) -> None:
        self._strong("swap").swap(other)

    def __str__(self):
        return render(self)

    def __repr__(self):
        slot = self._ref()
        if slot is None:
            return "WeakRcOCell(<dropped>)"
        return f"WeakRcOCell({RcOCell.from_slot(slot)!r})"
