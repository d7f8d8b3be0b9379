from __future__ import annotations

from enum import Enum
from typing import Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class CursorStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CLOSED = "closed"


class Cursor(Generic[T]):
    """Indexable query result that carries its own status.

    A failed cursor has no values and must not be indexed; an empty successful
    cursor is a normal result (e.g. a folder with no children).
    """

    def __init__(
        self,
        values: Optional[Iterable[T]] = None,
        *,
        status: CursorStatus = CursorStatus.SUCCESS,
        message: str = "Success",
    ):
        self.status = status
        self.status_message = message
        self._values: List[T] = list(values) if values is not None and status == CursorStatus.SUCCESS else []

    @classmethod
    def failure(cls, message: str) -> "Cursor[T]":
        return cls(status=CursorStatus.FAILURE, message=message)

    @classmethod
    def empty(cls) -> "Cursor[T]":
        return cls([])

    @property
    def count(self) -> int:
        return len(self._values)

    @property
    def ok(self) -> bool:
        return self.status == CursorStatus.SUCCESS

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> T:
        if self.status != CursorStatus.SUCCESS:
            raise RuntimeError(f"cannot index a {self.status.value} cursor: {self.status_message or '<no message>'}")
        return self._values[index]

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._values))

    def close(self) -> None:
        self._values = []
        self.status = CursorStatus.CLOSED
        self.status_message = "Closed"

    def __repr__(self) -> str:
        if self.status == CursorStatus.SUCCESS:
            return f"Cursor(count={self.count})"
        return f"Cursor(status={self.status.value}, message={self.status_message!r})"
