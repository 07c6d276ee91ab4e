from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging

from formstore.domain.errors import DomainError
from formstore.domain.error_taxonomy import error_code_for, resolve_disposition, resolve_operation_error
from formstore.domain.layouts import TableLayout, layout_for
from formstore.domain.models import BackfillResult
from formstore.lib.tables.allocator import IdentifierAllocator
from formstore.lib.tables.locator import RowLocator

logger = logging.getLogger("formstore.tables")


@dataclass
class BackfillService:
    """Assigns identifiers to rows that never received them.

    Safe to repeat and to run next to live traffic: assignment only ever
    fills blank identifier cells.
    """

    allocator: IdentifierAllocator
    locator: RowLocator
    layouts: dict[str, TableLayout] | None = None

    async def repair_missing_identifiers(self, table: str) -> BackfillResult:
        layout = layout_for(table, self.layouts)
        if not layout.identifier_columns:
            return BackfillResult(table=table, rows_updated=0)

        candidates = await self.locator.rows_missing(table, layout.identifier_column_names)
        rows_updated = 0
        failed: list[int] = []
        for row_position in candidates:
            try:
                result = await self.allocator.assign_identifiers(table, row_position)
            except DomainError as exc:
                code = resolve_operation_error(operation="backfill", code=error_code_for(exc))
                if resolve_disposition(operation="backfill", code=code) == "surfaced":
                    raise
                failed.append(row_position)
                logger.warning(
                    "backfill row failed",
                    extra={
                        "table": table,
                        "row_position": row_position,
                        "operation": "backfill",
                        "error_code": code,
                    },
                )
                continue
            if result.newly_assigned:
                rows_updated += 1

        logger.info(
            "backfill finished",
            extra={
                "table": table,
                "operation": "backfill",
                "rows_updated": rows_updated,
                "rows_failed": len(failed),
            },
        )
        return BackfillResult(
            table=table,
            rows_updated=rows_updated,
            rows_missing=len(candidates),
            failed_rows=tuple(failed),
        )

    async def repair_all(self, tables: Iterable[str]) -> list[BackfillResult]:
        return [await self.repair_missing_identifiers(table) for table in tables]
