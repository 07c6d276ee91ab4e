from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from formstore.domain.contracts import CounterStore, TabularBackend
from formstore.domain.layouts import TableLayout
from formstore.lib.tables.allocator import IdentifierAllocator
from formstore.lib.tables.backfill import BackfillService
from formstore.lib.tables.locator import RowLocator
from formstore.lib.tables.schema import SchemaManager
from formstore.lib.tables.writer import RowWriter, utc_now


@dataclass(frozen=True)
class TableStore:
    backend: TabularBackend
    counters: CounterStore
    schema: SchemaManager
    writer: RowWriter
    allocator: IdentifierAllocator
    locator: RowLocator
    backfill: BackfillService
    clock: Callable[[], datetime] = utc_now


def build_table_store(
    *,
    backend: TabularBackend,
    counters: CounterStore,
    layouts: dict[str, TableLayout] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> TableStore:
    now = clock or utc_now
    schema = SchemaManager(backend=backend)
    writer = RowWriter(schema=schema, backend=backend, layouts=layouts, clock=now)
    allocator = IdentifierAllocator(schema=schema, backend=backend, counters=counters, layouts=layouts, clock=now)
    locator = RowLocator(schema=schema, backend=backend, layouts=layouts)
    backfill = BackfillService(allocator=allocator, locator=locator, layouts=layouts)
    return TableStore(
        backend=backend,
        counters=counters,
        schema=schema,
        writer=writer,
        allocator=allocator,
        locator=locator,
        backfill=backfill,
        clock=now,
    )
