"""Failure reasons raised by cell operations.

``try_*`` operations raise one of the :class:`RcOCellError` subclasses.
The direct forms raise :class:`RcOCellPanic` instead, chained to the typed
error, because a conflict there is a programming error.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional


class AccessMode(Enum):
    """Access state of a slot."""
    FREE = "free"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class RcOCellError(Exception):
    """Base class for recoverable cell failures"""
    pass


class NoValue(RcOCellError):
    """Operation needs a value but the slot is empty"""

    def __init__(self, message: str = "No value present"):
        super().__init__(message)


class Dropped(RcOCellError):
    """Operation went through a handle whose slot no longer exists"""

    def __init__(self, message: str = "Cell already dropped"):
        super().__init__(message)


class AccessConflict(RcOCellError):
    """Requested access mode conflicts with an outstanding guard"""

    def __init__(self, message: str, mode: AccessMode):
        super().__init__(message)
        self.mode = mode

    def __reduce__(self):
        return _rebuild_conflict, (type(self), str(self), self.mode)


def _rebuild_conflict(cls, message, mode):
    error = cls.__new__(cls)
    AccessConflict.__init__(error, message, mode)
    return error


class SharedAccessConflict(AccessConflict):
    """Shared access refused because an exclusive guard exists"""

    def __init__(self, message: str = "already mutably borrowed"):
        super().__init__(message, AccessMode.SHARED)


class ExclusiveAccessConflict(AccessConflict):
    """Exclusive access refused because some guard exists"""

    def __init__(self, message: str = "already borrowed"):
        super().__init__(message, AccessMode.EXCLUSIVE)


class RcOCellPanic(RuntimeError):
    """Raised by the non-try operations on the same conditions as their try forms."""

    def __init__(self, operation: str, error: RcOCellError, label: Optional[str] = None):
        self.operation = operation
        self.error = error
        self.label = label
        where = f" on cell {label!r}" if label else ""
        super().__init__(f"{operation} failed{where}: {error}")


@contextmanager
def panic_on_error(operation: str, label: Optional[str] = None) -> Iterator[None]:
    """Turn typed errors raised inside the block into :class:`RcOCellPanic`."""
    try:
        yield
    except RcOCellError as err:
        raise RcOCellPanic(operation, err, label) from err
