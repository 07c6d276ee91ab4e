from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from formstore.domain.models import Cell


@runtime_checkable
class TabularBackend(Protocol):
    """Raw read/write primitives of the tabular store.

    Positions are 1-based data-row numbers (the header is not a row).
    Column indexes are 0-based positions in the header. Rows shorter than the
    header read as blank in the missing cells.

    Implementations raise StorageWriteError when the store rejects a write and
    StorageReadError when it cannot be read. append_row must be atomic: two
    concurrent appends never receive the same position.
    """

    async def list_tables(self) -> list[str]: ...

    async def read_header(self, table: str) -> list[str]: ...

    # Appends the names whose normalized key the header lacks, in order, and
    # returns them. Read-compare-write is atomic per table across processes.
    async def extend_header(self, table: str, columns: Sequence[str]) -> list[str]: ...

    async def append_row(self, table: str, cells: Sequence[Cell]) -> int: ...

    async def read_rows(self, table: str) -> list[list[Cell]]: ...

    async def read_row(self, table: str, position: int) -> list[Cell] | None: ...

    # With only_if_blank=True the write is skipped (and False returned) when
    # the cell already holds a value; the check and the write are atomic.
    async def write_cell(
        self,
        table: str,
        position: int,
        column_index: int,
        value: Cell,
        *,
        only_if_blank: bool = False,
    ) -> bool: ...


@runtime_checkable
class CounterStore(Protocol):
    """Key-value persistence for "highest identifier issued so far".

    Keys look like "{table}:{counter_kind}". Raises
    CounterStoreUnavailableError when the service cannot be reached.
    """

    async def get(self, key: str) -> int | None: ...

    # expected=None means "key is absent".
    async def compare_and_set(self, key: str, expected: int | None, new: int) -> bool: ...
