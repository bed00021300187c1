"""Backing storage shared by a family of cells, and the guards handed out over it.

The slot keeps an access flag in the same spirit as a read/write lock, but it
never waits: ``0`` means free, a positive number counts shared guards and
``-1`` marks a single exclusive guard. A request that conflicts with the
current flag fails immediately.

Guards must be released exactly once. They are context managers and also
expose ``release()``; a guard that is garbage collected while still held
releases itself.
"""

import logging
from typing import Any, Generic, Optional, TypeVar

from .errors import (
    AccessMode,
    ExclusiveAccessConflict,
    NoValue,
    SharedAccessConflict,
    panic_on_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNUSED = 0
_WRITING = -1


class _Empty:
    __slots__ = ()

    def __repr__(self):
        return "<empty>"


# Marks an empty slot, so that None stays a storable value.
EMPTY: Any = _Empty()


class Slot(Generic[T]):
    """
    A heap slot holding zero or one value plus its access state.

    Every strong handle (cell or guard) references the slot directly; weak
    handles only hold a ``weakref`` to it.
    """

    __slots__ = ("_value", "_flag", "label", "__weakref__")

    def __init__(self, value: Any = EMPTY, *, label: Optional[str] = None):
        self._value = value
        self._flag = _UNUSED
        self.label = label

    def has_value(self) -> bool:
        return self._value is not EMPTY

    def is_some(self) -> bool:
        """Presence as seen from outside; an exclusive guard implies a value."""
        return self._flag == _WRITING or self._value is not EMPTY

    @property
    def access(self) -> AccessMode:
        if self._flag == _WRITING:
            return AccessMode.EXCLUSIVE
        if self._flag > _UNUSED:
            return AccessMode.SHARED
        return AccessMode.FREE

    @property
    def shared_count(self) -> int:
        """Number of outstanding shared guards."""
        return self._flag if self._flag > _UNUSED else 0

    def try_borrow(self) -> "Ref[T]":
        """Acquire a shared guard; the slot may be empty."""
        if self._flag == _WRITING:
            logger.debug(f"Shared access to slot {self.label!r} refused: exclusive guard outstanding")
            raise SharedAccessConflict()
        self._flag += 1
        return Ref(self)

    def try_borrow_mut(self) -> "RefMut[T]":
        """Acquire an exclusive guard; the slot may be empty."""
        if self._flag != _UNUSED:
            logger.debug(f"Exclusive access to slot {self.label!r} refused: state is {self.access.value}")
            raise ExclusiveAccessConflict()
        self._flag = _WRITING
        return RefMut(self)

    def borrow(self) -> "Ref[T]":
        with panic_on_error("Slot.borrow", self.label):
            return self.try_borrow()

    def borrow_mut(self) -> "RefMut[T]":
        with panic_on_error("Slot.borrow_mut", self.label):
            return self.try_borrow_mut()

    def exchange(self, value: Any) -> Any:
        """Install ``value`` (or EMPTY) and return the previous content; needs a free slot."""
        guard = self.try_borrow_mut()
        try:
            old, self._value = self._value, value
        finally:
            guard.release()
        return old

    def swap(self, other: "Slot[T]") -> None:
        """Exchange contents with ``other`` while holding both exclusively."""
        mine = self.try_borrow_mut()
        try:
            theirs = other.try_borrow_mut()
            try:
                self._value, other._value = other._value, self._value
            finally:
                theirs.release()
        finally:
            mine.release()

    def _release_shared(self):
        if self._flag <= _UNUSED:
            raise RuntimeError(f"shared release on slot in state {self.access.value}")
        self._flag -= 1

    def _release_exclusive(self):
        if self._flag != _WRITING:
            raise RuntimeError(f"exclusive release on slot in state {self.access.value}")
        self._flag = _UNUSED

    def __repr__(self):
        return f"Slot({self._value!r}, access={self.access.value}, label={self.label!r})"


class Ref(Generic[T]):
    """Shared guard. ``value`` reads the slot content."""

    __slots__ = ("_slot",)

    def __init__(self, slot: Slot[T]):
        self._slot: Optional[Slot[T]] = slot

    @property
    def released(self) -> bool:
        return self._slot is None

    def _held(self) -> Slot[T]:
        if self._slot is None:
            raise RuntimeError(f"{type(self).__name__} used after release")
        return self._slot

    @property
    def value(self) -> T:
        slot = self._held()
        if slot._value is EMPTY:
            raise NoValue()
        return slot._value

    def has_value(self) -> bool:
        return self._held()._value is not EMPTY

    def get(self, default: Optional[T] = None) -> Optional[T]:
        """Return the value, or ``default`` when the slot is empty."""
        slot = self._held()
        return default if slot._value is EMPTY else slot._value

    def release(self) -> None:
        """Give the access right back. Releasing twice is a no-op."""
        slot, self._slot = self._slot, None
        if slot is not None:
            slot._release_shared()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()

    def __copy__(self):
        raise TypeError("guards cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("guards cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError("guards cannot be copied")

    def __del__(self):
        if self._slot is not None:
            # module globals may already be cleared at interpreter shutdown
            if logger is not None:
                logger.debug(f"{type(self).__name__} on slot {self._slot.label!r} reclaimed without release")
            self.release()

    def __repr__(self):
        if self._slot is None:
            return f"{type(self).__name__}(<released>)"
        return f"{type(self).__name__}({self._slot._value!r})"


class RefMut(Ref[T]):
    """Exclusive guard. ``value`` may also be assigned."""

    __slots__ = ()

    @Ref.value.setter
    def value(self, new: T) -> None:
        self._held()._value = new

    def release(self) -> None:
        slot, self._slot = self._slot, None
        if slot is not None:
            slot._release_exclusive()
