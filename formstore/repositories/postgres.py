from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import json
from typing import Any

import asyncpg

from formstore.domain.errors import CounterStoreUnavailableError, StorageReadError, StorageWriteError
from formstore.domain.models import BLANK, Cell, is_blank
from formstore.domain.names import absent_names
from formstore.repositories.sql_loader import load_sql


SQL_LIST_TABLES = load_sql("list_tables.sql")
SQL_READ_HEADER = load_sql("read_header.sql")
SQL_WRITE_HEADER = load_sql("write_header.sql")
SQL_LOCK_TABLE = load_sql("lock_table.sql")
SQL_APPEND_ROW = load_sql("append_row.sql")
SQL_READ_ROWS = load_sql("read_rows.sql")
SQL_READ_ROW = load_sql("read_row.sql")
SQL_READ_ROW_FOR_UPDATE = load_sql("read_row_for_update.sql")
SQL_WRITE_ROW_CELLS = load_sql("write_row_cells.sql")
SQL_GET_COUNTER = load_sql("get_counter.sql")
SQL_INSERT_COUNTER = load_sql("insert_counter.sql")
SQL_COMPARE_AND_SET_COUNTER = load_sql("compare_and_set_counter.sql")

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@dataclass
class AsyncpgPoolManager:
    dsn: str
    pool: Any | None = None
    min_size: int = 1
    max_size: int = 5

    async def startup(self) -> None:
        async def _init_connection(conn: Any) -> None:
            await conn.set_type_codec(
                "json",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )
            await conn.set_type_codec(
                "jsonb",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )

        self.pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            init=_init_connection,
        )

    async def shutdown(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None

    def acquire(self) -> Any:
        if self.pool is None:
            raise RuntimeError("postgres pool is not initialized")
        return self.pool.acquire()


@dataclass
class PostgresTabularBackend:
    """Tables kept as a JSONB header plus one JSONB cell array per row."""

    pool_manager: AsyncpgPoolManager

    async def list_tables(self) -> list[str]:
        try:
            async with self.pool_manager.acquire() as conn:
                rows = await conn.fetch(SQL_LIST_TABLES)
        except _DRIVER_ERRORS as exc:
            raise StorageReadError(f"list_tables failed: {exc}") from exc
        return [row["table_name"] for row in rows]

    async def read_header(self, table: str) -> list[str]:
        try:
            async with self.pool_manager.acquire() as conn:
                row = await conn.fetchrow(SQL_READ_HEADER, table)
        except _DRIVER_ERRORS as exc:
            raise StorageReadError(f"read_header failed for table={table}: {exc}") from exc
        return _header_of(row)

    async def extend_header(self, table: str, columns: Sequence[str]) -> list[str]:
        _require_table_name(table, "extend_header")
        try:
            async with self.pool_manager.acquire() as conn:
                async with conn.transaction():
                    # Shares the per-table lock with append_row.
                    await conn.execute(SQL_LOCK_TABLE, table)
                    header = _header_of(await conn.fetchrow(SQL_READ_HEADER, table))
                    added = absent_names(header, columns)
                    if added:
                        await conn.execute(SQL_WRITE_HEADER, table, [*header, *added])
        except _DRIVER_ERRORS as exc:
            raise StorageWriteError(f"extend_header failed for table={table}: {exc}") from exc
        return added

    async def append_row(self, table: str, cells: Sequence[Cell]) -> int:
        _require_table_name(table, "append_row")
        try:
            async with self.pool_manager.acquire() as conn:
                async with conn.transaction():
                    # Serializes position assignment per table across processes.
                    await conn.execute(SQL_LOCK_TABLE, table)
                    position = await conn.fetchval(SQL_APPEND_ROW, table, list(cells))
        except _DRIVER_ERRORS as exc:
            raise StorageWriteError(f"append_row failed for table={table}: {exc}") from exc
        if position is None:
            raise StorageWriteError(f"append_row failed for table={table}: no position returned")
        return int(position)

    async def read_rows(self, table: str) -> list[list[Cell]]:
        try:
            async with self.pool_manager.acquire() as conn:
                rows = await conn.fetch(SQL_READ_ROWS, table)
        except _DRIVER_ERRORS as exc:
            raise StorageReadError(f"read_rows failed for table={table}: {exc}") from exc
        # Positions are dense, so list order matches position order.
        return [list(row["cells"]) for row in rows]

    async def read_row(self, table: str, position: int) -> list[Cell] | None:
        try:
            async with self.pool_manager.acquire() as conn:
                row = await conn.fetchrow(SQL_READ_ROW, table, position)
        except _DRIVER_ERRORS as exc:
            raise StorageReadError(f"read_row failed for table={table} row={position}: {exc}") from exc
        if row is None:
            return None
        return list(row["cells"])

    async def write_cell(
        self,
        table: str,
        position: int,
        column_index: int,
        value: Cell,
        *,
        only_if_blank: bool = False,
    ) -> bool:
        _require_table_name(table, "write_cell")
        try:
            async with self.pool_manager.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(SQL_READ_ROW_FOR_UPDATE, table, position)
                    if row is None:
                        raise StorageWriteError(f"write_cell rejected: table={table} has no row {position}")
                    cells = list(row["cells"])
                    if len(cells) <= column_index:
                        cells.extend([BLANK] * (column_index + 1 - len(cells)))
                    if only_if_blank and not is_blank(cells[column_index]):
                        return False
                    cells[column_index] = value
                    await conn.execute(SQL_WRITE_ROW_CELLS, table, position, cells)
        except _DRIVER_ERRORS as exc:
            raise StorageWriteError(f"write_cell failed for table={table} row={position}: {exc}") from exc
        return True


@dataclass
class PostgresCounterStore:
    pool_manager: AsyncpgPoolManager

    async def get(self, key: str) -> int | None:
        try:
            async with self.pool_manager.acquire() as conn:
                value = await conn.fetchval(SQL_GET_COUNTER, key)
        except (*_DRIVER_ERRORS, RuntimeError) as exc:
            raise CounterStoreUnavailableError(f"counter read failed for key={key}: {exc}") from exc
        return None if value is None else int(value)

    async def compare_and_set(self, key: str, expected: int | None, new: int) -> bool:
        try:
            async with self.pool_manager.acquire() as conn:
                if expected is None:
                    stored = await conn.fetchval(SQL_INSERT_COUNTER, key, new)
                else:
                    stored = await conn.fetchval(SQL_COMPARE_AND_SET_COUNTER, key, expected, new)
        except (*_DRIVER_ERRORS, RuntimeError) as exc:
            raise CounterStoreUnavailableError(f"counter update failed for key={key}: {exc}") from exc
        return stored is not None


def _require_table_name(table: str, action: str) -> None:
    if not table.strip():
        raise StorageWriteError(f"{action} rejected: table name is empty")


def _header_of(row: Any) -> list[str]:
    if row is None:
        return []
    return [str(name) for name in row["columns"]]
