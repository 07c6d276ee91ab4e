from __future__ import annotations

from formstore.api.handlers.deps import ApiDeps, table_name
from formstore.api.schemas import RepairIdentifiersResponse, TableRepairSummary
from formstore.domain.dto import RepairIdentifiersCommand
from formstore.domain.use_cases.backfill import repair_identifiers

COMPONENT_ID = "api.repair_identifiers"


async def repair_identifiers_handler(*, table: str | None, api_deps: ApiDeps) -> RepairIdentifiersResponse:
    result = await repair_identifiers(
        api_deps.store,
        RepairIdentifiersCommand(
            table=table_name(table) if table is not None else None,
            known_tables=api_deps.known_tables,
        ),
    )
    return RepairIdentifiersResponse(
        rows_updated=result.rows_updated,
        tables=[
            TableRepairSummary(
                table=item.table,
                rows_updated=item.rows_updated,
                rows_missing=item.rows_missing,
                failed_rows=list(item.failed_rows),
            )
            for item in result.results
        ],
    )
