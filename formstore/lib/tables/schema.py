from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from formstore.domain.contracts import TabularBackend
from formstore.domain.models import EnsureColumnsResult
from formstore.domain.names import absent_names
from formstore.lib.tables.columns import ColumnIndex

logger = logging.getLogger("formstore.tables")


@dataclass
class SchemaManager:
    """Owns the per-table column layout.

    Columns are only ever appended. The backend extends a header atomically
    per table; the local lock only saves redundant round trips between
    writers in this process.
    """

    backend: TabularBackend
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False, repr=False)
    _reported_conflicts: set[tuple[str, str, str]] = field(default_factory=set, init=False, repr=False)

    def _lock_for(self, table: str) -> asyncio.Lock:
        lock = self._locks.get(table)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[table] = lock
        return lock

    async def get_columns(self, table: str) -> list[str]:
        return await self.backend.read_header(table)

    async def column_index(self, table: str) -> ColumnIndex:
        index = ColumnIndex.build(await self.backend.read_header(table))
        self._report_conflicts(table, index)
        return index

    async def find_column(self, table: str, name: str) -> int | None:
        index = await self.column_index(table)
        return index.find(name)

    async def ensure_columns(self, table: str, names: Iterable[str]) -> EnsureColumnsResult:
        requested = list(names)
        async with self._lock_for(table):
            index = await self.column_index(table)
            added: list[str] = []
            # Blank names and aliases of an existing column add nothing.
            if absent_names(index.header, requested):
                added = await self.backend.extend_header(table, requested)
            if added:
                logger.info(
                    "columns added",
                    extra={"table": table, "operation": "ensure_columns", "columns": added},
                )
        return EnsureColumnsResult(table=table, added=tuple(added))

    def _report_conflicts(self, table: str, index: ColumnIndex) -> None:
        for canonical, alias in index.conflicts:
            marker = (table, canonical, alias)
            if marker in self._reported_conflicts:
                continue
            self._reported_conflicts.add(marker)
            logger.warning(
                "duplicate normalized column; first seen wins",
                extra={
                    "table": table,
                    "error_code": "schema_conflict",
                    "canonical_column": canonical,
                    "alias_column": alias,
                },
            )
