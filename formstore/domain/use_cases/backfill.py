from __future__ import annotations

from formstore.domain.dto import RepairIdentifiersCommand, RepairIdentifiersResult
from formstore.lib.tables.factory import TableStore

COMPONENT_ID = "workflow.admin.repair_identifiers"


async def repair_identifiers(store: TableStore, cmd: RepairIdentifiersCommand) -> RepairIdentifiersResult:
    """Backfill one table, or every known table plus any the store already holds."""
    if cmd.table is not None:
        return RepairIdentifiersResult(results=[await store.backfill.repair_missing_identifiers(cmd.table)])

    tables = list(cmd.known_tables)
    for table in await store.backend.list_tables():
        if table not in tables:
            tables.append(table)
    return RepairIdentifiersResult(results=await store.backfill.repair_all(tables))
