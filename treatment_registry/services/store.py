"""
Sparse tables keyed by dense, 1-based counters.

Reads of ids that were never assigned return a fresh default record instead
of raising, the same way a default-valued mapping behaves.
"""

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

RecordT = TypeVar("RecordT")


class SparseTable(Generic[RecordT]):
    """Monotonically growing table with default-valued reads."""

    def __init__(self, default_factory: Callable[[], RecordT]) -> None:
        self._default_factory = default_factory
        self._rows: dict[int, RecordT] = {}
        self._counter = 0

    @property
    def counter(self) -> int:
        """Highest id assigned so far (0 when empty)."""
        return self._counter

    def insert(self, record: RecordT) -> int:
        self._counter += 1
        self._rows[self._counter] = record
        return self._counter

    def get(self, record_id: int) -> RecordT:
        """Return the stored record, or a default one for unassigned ids."""
        row = self._rows.get(record_id)
        if row is None:
            return self._default_factory()
        return row

    def ids(self) -> list[int]:
        return list(range(1, self._counter + 1))

    def items(self) -> Iterator[tuple[int, RecordT]]:
        for record_id in self.ids():
            yield record_id, self._rows[record_id]
