"""Result-wrapped value extracted from a cell."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import RcOCellError

T = TypeVar("T")


@dataclass(frozen=True)
class CellResult(Generic[T]):
    """Either an extracted value or the error that prevented extraction."""

    value: Optional[T] = None
    error: Optional[RcOCellError] = None

    @classmethod
    def ok(cls, value: T) -> "CellResult[T]":
        return cls(value=value)

    @classmethod
    def err(cls, error: RcOCellError) -> "CellResult[T]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """Return the value, raising the stored error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value

    def unwrap_err(self) -> RcOCellError:
        if self.error is None:
            raise ValueError(f"CellResult holds a value, not an error: {self.value!r}")
        return self.error
