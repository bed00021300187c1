"""
rcocell: a shared, optionally-empty cell with runtime-checked access.

Clones of an RcOCell own the same slot; WeakRcOCell handles do not keep it
alive. Shared and exclusive access are tracked at runtime and conflicting
requests fail immediately instead of aliasing. Not a thread synchronization
primitive.
"""

from .cell import RcOCell
from .compute import ComputeResult, DoNothing, Remove, Replace
from .errors import (
    AccessConflict,
    AccessMode,
    Dropped,
    ExclusiveAccessConflict,
    NoValue,
    RcOCellError,
    RcOCellPanic,
    SharedAccessConflict,
)
from .result import CellResult
from .slot import Ref, RefMut, Slot
from .weak import WeakRcOCell

__version__ = "0.1.0"
__all__ = [
    "RcOCell",
    "WeakRcOCell",
    "Slot",
    "Ref",
    "RefMut",
    "AccessMode",
    "ComputeResult",
    "Replace",
    "Remove",
    "DoNothing",
    "CellResult",
    "RcOCellError",
    "NoValue",
    "Dropped",
    "AccessConflict",
    "SharedAccessConflict",
    "ExclusiveAccessConflict",
    "RcOCellPanic",
]
