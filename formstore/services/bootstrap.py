from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import os

from formstore.api.handlers.deps import ApiDeps
from formstore.domain.contracts import CounterStore, TabularBackend
from formstore.domain.errors import DomainDependencyError
from formstore.domain.error_taxonomy import error_code_for
from formstore.lib.tables import DEFAULT_KNOWN_TABLES, build_table_store
from formstore.lib.tables.factory import TableStore
from formstore.repositories.postgres import AsyncpgPoolManager, PostgresCounterStore, PostgresTabularBackend
from formstore.repositories.stub import InMemoryCounterStore, InMemoryTabularBackend
from formstore.roles import RuntimeRole
from formstore.workers.loop import BackfillLoop

logger = logging.getLogger("runtime")


@dataclass
class RuntimeContainer:
    store: TableStore
    known_tables: tuple[str, ...]
    api_deps: ApiDeps
    worker_loop: BackfillLoop | None
    on_startup: Callable[[], Awaitable[None]] | None
    on_shutdown: Callable[[], Awaitable[None]] | None


def known_tables_from_env() -> tuple[str, ...]:
    raw = os.getenv("FORMSTORE_TABLES")
    if raw is None:
        return DEFAULT_KNOWN_TABLES
    tables = tuple(dict.fromkeys(name.strip() for name in raw.split(",") if name.strip()))
    return tables or DEFAULT_KNOWN_TABLES


def build_runtime_container(role: RuntimeRole) -> RuntimeContainer:
    database_url = os.getenv("DATABASE_URL")
    known_tables = known_tables_from_env()
    pool_manager: AsyncpgPoolManager | None = None
    backend: TabularBackend
    counters: CounterStore
    if database_url:
        pool_manager = AsyncpgPoolManager(dsn=database_url)
        backend = PostgresTabularBackend(pool_manager=pool_manager)
        counters = PostgresCounterStore(pool_manager=pool_manager)
        mode = "postgres"
    else:
        backend = InMemoryTabularBackend()
        counters = InMemoryCounterStore()
        mode = "memory"
    store = build_table_store(backend=backend, counters=counters)

    async def on_startup() -> None:
        if pool_manager is not None:
            await pool_manager.startup()
        await sync_known_counters(store, known_tables)

    on_shutdown = pool_manager.shutdown if pool_manager is not None else None

    worker_loop: BackfillLoop | None = None
    if role.runs_backfill:
        worker_loop = BackfillLoop(role=role.name, store=store, known_tables=known_tables)

    return RuntimeContainer(
        store=store,
        known_tables=known_tables,
        api_deps=ApiDeps(store=store, known_tables=known_tables, mode=mode),
        worker_loop=worker_loop,
        on_startup=on_startup,
        on_shutdown=on_shutdown,
    )


async def sync_known_counters(store: TableStore, tables: tuple[str, ...]) -> None:
    """Raise persisted counters to what the tables already hold.

    A missing counter store only degrades allocation, so startup goes on.
    """
    for table in tables:
        try:
            await store.allocator.sync_counters(table)
        except DomainDependencyError as exc:
            logger.warning(
                "counter sync skipped",
                extra={"table": table, "operation": "sync_counters", "error_code": error_code_for(exc)},
            )
