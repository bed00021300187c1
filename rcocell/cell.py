"""Shared-owning cell holding zero or one value with runtime access checks.

Every clone of a cell owns the same :class:`~rcocell.slot.Slot`. Reads take a
shared guard, writes an exclusive one; a conflicting request fails at once
instead of waiting. Each fallible operation comes in two forms:

* ``try_<op>`` raises a typed :class:`~rcocell.errors.RcOCellError`;
* ``<op>`` raises :class:`~rcocell.errors.RcOCellPanic` on the same conditions.

Not thread-safe: a family of cells belongs to a single owner domain.
"""

import copy
import logging
from contextlib import nullcontext
from typing import Any, Callable, ContextManager, List, Optional, TypeVar, Generic

from .compute import ComputeResult, Remove, Replace, check_outcome
from .errors import (
    AccessConflict,
    AccessMode,
    Dropped,
    ExclusiveAccessConflict,
    NoValue,
    RcOCellError,
    panic_on_error,
)
from .result import CellResult
from .slot import EMPTY, Ref, RefMut, Slot

logger = logging.getLogger(__name__)

T = TypeVar("T")
X = TypeVar("X")

NO_VALUE_MESSAGE = "No value present"
BORROWED_MESSAGE = "Value currently inaccessible because it is borrowed mutably somewhere"
DROPPED_MESSAGE = "Value already dropped"


def render(handle) -> str:
    """Display form shared by cells and weak references."""
    try:
        guard = handle.try_borrow()
    except NoValue:
        return NO_VALUE_MESSAGE
    except AccessConflict:
        return BORROWED_MESSAGE
    except Dropped:
        return DROPPED_MESSAGE
    with guard:
        return str(guard.value)


class RcOCell(Generic[T]):
    """
    A strong owner of a slot that can be empty or hold one value.

    Cells are created with ``RcOCell()`` (empty), :meth:`from_value` or
    :meth:`from_option`. ``clone()`` adds another owner of the same slot;
    :meth:`downgrade` gives a weak handle that does not keep the slot alive.
    A handle is given up with :meth:`drop`, at the end of a ``with`` block,
    or when it is garbage collected.
    """

    __slots__ = ("_slot", "__weakref__")

    def __init__(self, *, label: Optional[str] = None):
        self._slot: Optional[Slot[T]] = Slot(label=label)

    @classmethod
    def from_value(cls, value: T, *, label: Optional[str] = None) -> "RcOCell[T]":
        return cls.from_slot(Slot(value, label=label))

    @classmethod
    def from_option(cls, value: Optional[T], *, label: Optional[str] = None) -> "RcOCell[T]":
        """Build a cell that is empty when ``value`` is None."""
        return cls.from_slot(Slot(EMPTY if value is None else value, label=label))

    @classmethod
    def from_list(cls, items: List[Any], *, label: Optional[str] = None) -> "RcOCell[List[Any]]":
        return cls.from_value(list(items), label=label)

    @classmethod
    def default(cls, factory: Callable[[], T], *, label: Optional[str] = None) -> "RcOCell[T]":
        """Build a cell holding ``factory()``, e.g. ``RcOCell.default(list)``."""
        return cls.from_value(factory(), label=label)

    @classmethod
    def from_slot(cls, slot: Slot[T]) -> "RcOCell[T]":
        """Wrap an existing raw slot as a new strong owner."""
        cell = cls.__new__(cls)
        cell._slot = slot
        return cell

    @classmethod
    def from_weak(cls, weak) -> "RcOCell[T]":
        return weak.try_upgrade()

    # -- handle lifecycle -------------------------------------------------

    def _live(self) -> Slot[T]:
        if self._slot is None:
            raise Dropped("Cell handle already released")
        return self._slot

    def _direct(self, operation: str) -> ContextManager[None]:
        label = self._slot.label if self._slot is not None else None
        return panic_on_error(f"RcOCell.{operation}", label)

    @property
    def label(self) -> Optional[str]:
        return self._slot.label if self._slot is not None else None

    def clone(self) -> "RcOCell[T]":
        with self._direct("clone"):
            return RcOCell.from_slot(self._live())

    def __copy__(self):
        return self.clone()

    def __deepcopy__(self, memo):
        # Copies of containing objects share the slot, like clone()
        return self.clone()

    def drop(self) -> None:
        """Release this handle. The slot dies once no strong owner is left."""
        if self._slot is not None:
            logger.debug(f"Released cell handle on slot {self._slot.label!r}")
        self._slot = None

    def is_released(self) -> bool:
        return self._slot is None

    def _peek(self) -> Optional[Slot[T]]:
        return self._slot

    def ptr_eq(self, other) -> bool:
        """True when both handles refer to the same slot."""
        return self._slot is not None and self._slot is other._peek()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.drop()

    # -- presence ---------------------------------------------------------

    def is_some(self) -> bool:
        """Never raises. A value under an exclusive guard counts as present."""
        return self._slot is not None and self._slot.is_some()

    def is_none(self) -> bool:
        """Never raises."""
        return not self.is_some()

    # -- guards -----------------------------------------------------------

    def try_borrow(self) -> Ref[T]:
        guard = self._live().try_borrow()
        if not guard.has_value():
            guard.release()
            raise NoValue()
        return guard

    def try_borrow_mut(self) -> RefMut[T]:
        guard = self._live().try_borrow_mut()
        if not guard.has_value():
            guard.release()
            raise NoValue()
        return guard

    def borrow(self) -> Ref[T]:
        with self._direct("borrow"):
            return self.try_borrow()

    def borrow_mut(self) -> RefMut[T]:
        with self._direct("borrow_mut"):
            return self.try_borrow_mut()

    # -- compute ----------------------------------------------------------

    @staticmethod
    def _run(guard: RefMut[T], fn, present_only: bool) -> Optional[ComputeResult]:
        try:
            if guard.has_value():
                outcome = fn(guard)
            elif present_only:
                return None
            else:
                outcome = fn(None)
        finally:
            guard.release()
        return check_outcome(outcome)

    def _apply(self, outcome: Optional[ComputeResult]) -> None:
        if isinstance(outcome, Replace):
            self._live().exchange(outcome.value)
        elif isinstance(outcome, Remove):
            self._live().exchange(EMPTY)

    def try_compute(self, fn: Callable[[Optional[RefMut[T]]], ComputeResult]) -> None:
        """
        Run ``fn`` with exclusive access and apply the outcome it returns.

        ``fn`` gets a :class:`RefMut` view of the value, or None when the slot
        is empty. Access is released before the outcome is applied.
        """
        outcome = self._run(self._live().try_borrow_mut(), fn, present_only=False)
        self._apply(outcome)

    def compute(self, fn: Callable[[Optional[RefMut[T]]], ComputeResult]) -> None:
        with self._direct("compute"):
            guard = self._live().try_borrow_mut()
        outcome = self._run(guard, fn, present_only=False)
        with self._direct("compute"):
            self._apply(outcome)

    def try_compute_if_present(self, fn: Callable[[RefMut[T]], ComputeResult]) -> bool:
        """Like :meth:`try_compute` but only runs ``fn`` when a value exists."""
        outcome = self._run(self._live().try_borrow_mut(), fn, present_only=True)
        self._apply(outcome)
        return outcome is not None

    def compute_if_present(self, fn: Callable[[RefMut[T]], ComputeResult]) -> bool:
        with self._direct("compute_if_present"):
            guard = self._live().try_borrow_mut()
        outcome = self._run(guard, fn, present_only=True)
        with self._direct("compute_if_present"):
            self._apply(outcome)
        return outcome is not None

    def _compute_if_absent(self, slot: Slot[T], fn: Callable[[], Optional[T]],
                           operation: Optional[str]) -> bool:
        try:
            guard = slot.try_borrow_mut()
        except ExclusiveAccessConflict:
            logger.debug(f"compute_if_absent skipped: slot {slot.label!r} is busy")
            return False
        try:
            if guard.has_value():
                return False
            value = fn()
        finally:
            guard.release()
        if value is not None:
            with self._direct(operation) if operation else nullcontext():
                slot.exchange(value)
        return True

    def try_compute_if_absent(self, fn: Callable[[], Optional[T]]) -> bool:
        """
        Run ``fn`` only if the slot is empty and free; store its result unless None.

        Contention is not an error here: a busy slot returns False.
        """
        return self._compute_if_absent(self._live(), fn, None)

    def compute_if_absent(self, fn: Callable[[], Optional[T]]) -> bool:
        with self._direct("compute_if_absent"):
            slot = self._live()
        return self._compute_if_absent(slot, fn, "compute_if_absent")

    # -- callbacks without write-back -------------------------------------

    @staticmethod
    def _visit(guard: Ref[T], fn, view) -> bool:
        try:
            if not guard.has_value():
                return False
            # TODO: decide whether a returned ComputeResult should be applied like compute_if_present
            fn(view(guard))
        finally:
            guard.release()
        return True

    def try_if_present(self, fn: Callable[[T], Any]) -> bool:
        """Call ``fn(value)`` under shared access if present. Its return value is ignored."""
        return self._visit(self._live().try_borrow(), fn, lambda g: g.value)

    def if_present(self, fn: Callable[[T], Any]) -> bool:
        with self._direct("if_present"):
            guard = self._live().try_borrow()
        return self._visit(guard, fn, lambda g: g.value)

    def try_if_present_mut(self, fn: Callable[[RefMut[T]], Any]) -> bool:
        """Call ``fn(view)`` under exclusive access if present. Its return value is ignored."""
        return self._visit(self._live().try_borrow_mut(), fn, lambda g: g)

    def if_present_mut(self, fn: Callable[[RefMut[T]], Any]) -> bool:
        with self._direct("if_present_mut"):
            guard = self._live().try_borrow_mut()
        return self._visit(guard, fn, lambda g: g)

    # -- whole-value operations -------------------------------------------

    def try_get_and_clear(self) -> T:
        old = self._live().exchange(EMPTY)
        if old is EMPTY:
            raise NoValue()
        return old

    def get_and_clear(self) -> T:
        with self._direct("get_and_clear"):
            return self.try_get_and_clear()

    def try_replace(self, value: T) -> T:
        """Swap in ``value`` and return the old one; the slot must hold a value."""
        guard = self._live().try_borrow_mut()
        try:
            if not guard.has_value():
                raise NoValue()
            old = guard.value
            guard.value = value
        finally:
            guard.release()
        return old

    def replace(self, value: T) -> T:
        with self._direct("replace"):
            return self.try_replace(value)

    def try_set(self, value: T) -> Optional[T]:
        old = self._live().exchange(value)
        return None if old is EMPTY else old

    def set(self, value: T) -> Optional[T]:
        with self._direct("set"):
            return self.try_set(value)

    def try_clear(self) -> Optional[T]:
        old = self._live().exchange(EMPTY)
        return None if old is EMPTY else old

    def clear(self) -> Optional[T]:
        with self._direct("clear"):
            return self.try_clear()

    # -- transforms -------------------------------------------------------

    def try_map(self, fn: Callable[[T], X]) -> Optional[X]:
        """Return ``fn(value)`` under shared access, or None when empty."""
        with self._live().try_borrow() as guard:
            if not guard.has_value():
                return None
            return fn(guard.value)

    def map(self, fn: Callable[[T], X]) -> Optional[X]:
        with self._direct("map"):
            guard = self._live().try_borrow()
        with guard:
            if not guard.has_value():
                return None
            return fn(guard.value)

    def try_map_mut(self, fn: Callable[[RefMut[T]], X]) -> Optional[X]:
        """Return ``fn(view)`` under exclusive access, or None when empty."""
        with self._live().try_borrow_mut() as guard:
            if not guard.has_value():
                return None
            return fn(guard)

    def map_mut(self, fn: Callable[[RefMut[T]], X]) -> Optional[X]:
        with self._direct("map_mut"):
            guard = self._live().try_borrow_mut()
        with guard:
            if not guard.has_value():
                return None
            return fn(guard)

    def try_get_and_clone(self) -> T:
        """Return a deep copy of the value, leaving it in place."""
        with self.try_borrow() as guard:
            return copy.deepcopy(guard.value)

    def get_and_clone(self) -> T:
        with self._direct("get_and_clone"):
            guard = self.try_borrow()
        with guard:
            return copy.deepcopy(guard.value)

    def try_swap(self, other) -> None:
        """Exchange contents with ``other`` (a cell or weak reference); both must be free."""
        self._live().swap(other._live())

    def swap(self, other) -> None:
        with self._direct("swap"):
            self.try_swap(other)

    def downgrade(self):
        from .weak import WeakRcOCell

        with self._direct("downgrade"):
            return WeakRcOCell.from_slot(self._live())

    # -- conversions ------------------------------------------------------

    def into_slot(self) -> Slot[T]:
        """Hand over the raw slot, consuming this handle."""
        with self._direct("into_slot"):
            slot = self._live()
        self._slot = None
        return slot

    def into_option(self) -> Optional[T]:
        """Take the value out (None if empty), consuming this handle. Raises on conflict."""
        try:
            return self.try_clear()
        finally:
            self.drop()

    def into_result(self) -> CellResult[T]:
        """Take the value out as a :class:`CellResult`, consuming this handle."""
        try:
            return CellResult.ok(self.try_get_and_clear())
        except RcOCellError as err:
            return CellResult.err(err)
        finally:
            self.drop()

    def into_list(self) -> List[Any]:
        """Take a list value out, consuming this handle."""
        try:
            with self.try_borrow() as guard:
                if not isinstance(guard.value, list):
                    raise TypeError(f"cell holds {type(guard.value).__name__}, not list")
            return self.try_get_and_clear()
        finally:
            self.drop()

    # -- rendering --------------------------------------------------------

    def __str__(self):
        return render(self)

    def __repr__(self):
        slot = self._slot
        if slot is None:
            content = "<dropped>"
        elif slot.access is AccessMode.EXCLUSIVE:
            content = "<borrowed>"
        else:
            content = repr(slot._value)
        if slot is not None and slot.label:
            return f"RcOCell({content}, label={slot.label!r})"
        return f"RcOCell({content})"
