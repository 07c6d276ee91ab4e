from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from formstore.domain.errors import CounterStoreUnavailableError, StorageReadError, StorageWriteError
from formstore.domain.models import BLANK, Cell, is_blank
from formstore.domain.names import absent_names


@dataclass
class _TableData:
    header: list[str] = field(default_factory=list)
    rows: list[list[Cell]] = field(default_factory=list)


@dataclass
class InMemoryTabularBackend:
    """Non-network tabular store with deterministic behavior for local mode and tests.

    Every primitive yields to the event loop once before touching state, so
    concurrent callers interleave the way they would against a remote store.
    """

    tables: dict[str, _TableData] = field(default_factory=dict)
    fail_writes: bool = False
    fail_reads: bool = False
    latency_seconds: float = 0.0
    writes: list[tuple[str, str]] = field(default_factory=list)

    async def _io(self) -> None:
        await asyncio.sleep(self.latency_seconds)

    async def _read_io(self, table: str, action: str) -> None:
        await self._io()
        if self.fail_reads:
            raise StorageReadError(f"{action} failed for table={table}: store unavailable")

    def _check_writable(self, table: str, action: str) -> None:
        if self.fail_writes:
            raise StorageWriteError(f"{action} rejected for table={table}: store unavailable")
        if not table.strip():
            raise StorageWriteError(f"{action} rejected: table name is empty")

    async def list_tables(self) -> list[str]:
        await self._read_io("*", "list_tables")
        return list(self.tables)

    async def read_header(self, table: str) -> list[str]:
        await self._read_io(table, "read_header")
        data = self.tables.get(table)
        return list(data.header) if data is not None else []

    async def extend_header(self, table: str, columns: Sequence[str]) -> list[str]:
        await self._io()
        self._check_writable(table, "extend_header")
        data = self.tables.get(table)
        added = absent_names(data.header if data is not None else (), columns)
        if added:
            self.tables.setdefault(table, _TableData()).header.extend(added)
            self.writes.append((table, "header"))
        return added

    async def append_row(self, table: str, cells: Sequence[Cell]) -> int:
        await self._io()
        self._check_writable(table, "append_row")
        data = self.tables.setdefault(table, _TableData())
        data.rows.append(list(cells))
        self.writes.append((table, f"row:{len(data.rows)}"))
        return len(data.rows)

    async def read_rows(self, table: str) -> list[list[Cell]]:
        await self._read_io(table, "read_rows")
        data = self.tables.get(table)
        if data is None:
            return []
        return [list(row) for row in data.rows]

    async def read_row(self, table: str, position: int) -> list[Cell] | None:
        await self._read_io(table, "read_row")
        data = self.tables.get(table)
        if data is None or position < 1 or position > len(data.rows):
            return None
        return list(data.rows[position - 1])

    async def write_cell(
        self,
        table: str,
        position: int,
        column_index: int,
        value: Cell,
        *,
        only_if_blank: bool = False,
    ) -> bool:
        await self._io()
        self._check_writable(table, "write_cell")
        data = self.tables.get(table)
        if data is None or position < 1 or position > len(data.rows):
            raise StorageWriteError(f"write_cell rejected: table={table} has no row {position}")
        row = data.rows[position - 1]
        if len(row) <= column_index:
            row.extend([BLANK] * (column_index + 1 - len(row)))
        if only_if_blank and not is_blank(row[column_index]):
            return False
        row[column_index] = value
        self.writes.append((table, f"cell:{position}:{column_index}"))
        return True

    def seed(self, table: str, header: Sequence[str], rows: Sequence[Sequence[Cell]] = ()) -> None:
        """Install pre-existing data, e.g. rows written before identifiers existed."""
        self.tables[table] = _TableData(header=list(header), rows=[list(row) for row in rows])


@dataclass
class InMemoryCounterStore:
    values: dict[str, int] = field(default_factory=dict)
    available: bool = True
    latency_seconds: float = 0.0

    async def _io(self) -> None:
        await asyncio.sleep(self.latency_seconds)
        if not self.available:
            raise CounterStoreUnavailableError("counter store is unavailable")

    async def get(self, key: str) -> int | None:
        await self._io()
        return self.values.get(key)

    async def compare_and_set(self, key: str, expected: int | None, new: int) -> bool:
        await self._io()
        if self.values.get(key) != expected:
            return False
        self.values[key] = new
        return True
