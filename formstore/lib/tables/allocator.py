from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
import logging

from formstore.domain.contracts import CounterStore, TabularBackend
from formstore.domain.errors import (
    CounterStoreUnavailableError,
    DomainInvariantError,
    DomainValidationError,
    RowNotFoundError,
)
from formstore.domain.layouts import (
    COUNTER_KINDS,
    IdentifierKind,
    TableLayout,
    counter_key,
    identifier_kind,
    layout_for,
    semester_label,
)
from formstore.domain.models import AssignResult, Cell, is_blank
from formstore.lib.tables.schema import SchemaManager
from formstore.lib.tables.writer import utc_now

logger = logging.getLogger("formstore.tables")

MAX_COUNTER_ATTEMPTS = 8


def parse_identifier(value: Cell) -> int | None:
    """Return a non-negative integer identifier held by a cell, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        if value.is_integer() and value >= 0:
            return int(value)
        return None
    text = str(value).strip()
    if text.isdecimal():
        return int(text)
    try:
        parsed = float(text)
    except ValueError:
        return None
    if parsed.is_integer() and parsed >= 0:
        return int(parsed)
    return None


@dataclass
class _RowLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


@dataclass
class IdentifierAllocator:
    """Issues per-(table, counter kind) identifiers.

    The table's own identifier column is the durable source of truth; the
    counter store is a cache of the high-water mark that also serializes
    allocators running in other processes via compare-and-set. Within one
    process allocation for a key is additionally held under an asyncio lock.

    A key's first allocation scans the table. Once a compare-and-set has
    carried the counter past the scanned maximum, later allocations trust the
    counter and skip the scan until it goes missing or the store degrades.
    """

    schema: SchemaManager
    backend: TabularBackend
    counters: CounterStore
    layouts: dict[str, TableLayout] | None = None
    clock: Callable[[], datetime] = utc_now
    _key_locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False, repr=False)
    # Entries live only while a caller holds or waits on the row.
    _row_locks: dict[tuple[str, int], _RowLock] = field(default_factory=dict, init=False, repr=False)
    # Last value handed out per key by this allocator; keeps degraded
    # (scan-only) allocation from repeating a value before its cell is written.
    _issued: dict[str, int] = field(default_factory=dict, init=False, repr=False)
    # Keys whose stored counter is known to be at or above the column maximum.
    _validated: set[str] = field(default_factory=set, init=False, repr=False)

    def _key_lock(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[key] = lock
        return lock

    @asynccontextmanager
    async def _row_lock(self, table: str, row_position: int) -> AsyncIterator[None]:
        key = (table, row_position)
        entry = self._row_locks.get(key)
        if entry is None:
            entry = _RowLock()
            self._row_locks[key] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._row_locks[key]

    async def scan_max(self, table: str, kind: IdentifierKind | str) -> int:
        column = layout_for(table, self.layouts).column_for(identifier_kind(kind))
        column_position = await self.schema.find_column(table, column)
        if column_position is None:
            return 0
        scanned = 0
        for row in await self.backend.read_rows(table):
            if column_position >= len(row):
                continue
            parsed = parse_identifier(row[column_position])
            if parsed is not None and parsed > scanned:
                scanned = parsed
        return scanned

    async def allocate(self, table: str, kind: IdentifierKind | str) -> int:
        kind = identifier_kind(kind)
        if kind not in COUNTER_KINDS:
            raise DomainValidationError(f"identifier kind is not counter-backed: {kind}")
        key = counter_key(table, kind)
        async with self._key_lock(key):
            floor = self._issued.get(key, 0)
            scanned = key not in self._validated
            if scanned:
                floor = max(floor, await self.scan_max(table, kind))
            try:
                next_id = await self._advance_counter(key, floor, table=table, kind=kind, scanned=scanned)
                self._validated.add(key)
            except CounterStoreUnavailableError as exc:
                self._validated.discard(key)
                if not scanned:
                    floor = max(floor, await self.scan_max(table, kind))
                next_id = floor + 1
                logger.warning(
                    "identifier allocation degraded",
                    extra={
                        "table": table,
                        "counter_kind": kind.value,
                        "error_code": "allocation_degraded",
                        "detail": str(exc),
                    },
                )
            self._issued[key] = next_id
            return next_id

    async def _advance_counter(
        self, key: str, floor: int, *, table: str, kind: IdentifierKind, scanned: bool
    ) -> int:
        for _ in range(MAX_COUNTER_ATTEMPTS):
            stored = await self.counters.get(key)
            if stored is None and not scanned:
                # Counter lost since it was validated; the column decides again.
                self._validated.discard(key)
                floor = max(floor, await self.scan_max(table, kind))
                scanned = True
            baseline = max(floor, stored or 0)
            next_id = baseline + 1
            if await self.counters.compare_and_set(key, stored, next_id):
                return next_id
        raise DomainInvariantError(f"counter contention did not settle for key={key}")

    async def sync_counters(self, table: str) -> dict[str, int]:
        """Raise stored counters to at least the scanned column maximum.

        Used at startup and to heal a counter that was lost or lags behind
        the table. Never lowers a counter.
        """
        synced: dict[str, int] = {}
        layout = layout_for(table, self.layouts)
        kinds = [kind for kind, _column in layout.identifier_columns if kind in COUNTER_KINDS]
        for kind in kinds:
            key = counter_key(table, kind)
            async with self._key_lock(key):
                scanned = await self.scan_max(table, kind)
                for _ in range(MAX_COUNTER_ATTEMPTS):
                    stored = await self.counters.get(key)
                    if stored is not None and stored >= scanned:
                        synced[kind.value] = stored
                        break
                    if await self.counters.compare_and_set(key, stored, scanned):
                        synced[kind.value] = scanned
                        break
                if kind.value in synced:
                    self._validated.add(key)
        return synced

    async def assign_identifiers(self, table: str, row_position: int) -> AssignResult:
        """Fill blank identifier cells of one row; existing values are kept."""
        layout = layout_for(table, self.layouts)
        if not layout.identifier_columns:
            return AssignResult(table=table, row_position=row_position, assigned={})

        await self.schema.ensure_columns(table, layout.identifier_column_names)
        index = await self.schema.column_index(table)

        assigned: dict[str, Cell] = {}
        newly_assigned: list[str] = []
        async with self._row_lock(table, row_position):
            row = await self.backend.read_row(table, row_position)
            if row is None:
                raise RowNotFoundError(table=table, row_id=row_position)

            for kind, column in layout.identifier_columns:
                column_position = index.find(column)
                if column_position is None:
                    continue
                existing = row[column_position] if column_position < len(row) else None
                if not is_blank(existing):
                    assigned[kind.value] = existing
                    continue

                value: Cell
                if kind == IdentifierKind.SEMESTER:
                    value = semester_label(self.clock())
                else:
                    value = await self.allocate(table, kind)

                written = await self.backend.write_cell(
                    table, row_position, column_position, value, only_if_blank=True
                )
                if written:
                    assigned[kind.value] = value
                    newly_assigned.append(kind.value)
                else:
                    # Another process filled the cell first; report what it wrote.
                    fresh = await self.backend.read_row(table, row_position) or []
                    assigned[kind.value] = fresh[column_position] if column_position < len(fresh) else None

        if newly_assigned:
            logger.info(
                "identifiers assigned",
                extra={
                    "table": table,
                    "row_position": row_position,
                    "operation": "assign_identifiers",
                    "identifiers": {kind: assigned[kind] for kind in newly_assigned},
                },
            )
        return AssignResult(
            table=table,
            row_position=row_position,
            assigned=assigned,
            newly_assigned=tuple(newly_assigned),
        )
