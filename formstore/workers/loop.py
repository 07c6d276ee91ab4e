from __future__ import annotations

from dataclasses import dataclass
import logging

from formstore.domain.dto import RepairIdentifiersCommand
from formstore.domain.use_cases.backfill import repair_identifiers
from formstore.lib.tables.factory import TableStore

logger = logging.getLogger("runtime")


@dataclass
class BackfillLoop:
    role: str
    store: TableStore
    known_tables: tuple[str, ...]
    stage: str = "backfill"

    async def run_once(self) -> bool:
        """Repair every known table once; True when at least one row changed."""
        result = await repair_identifiers(self.store, RepairIdentifiersCommand(known_tables=self.known_tables))
        failed = sum(len(item.failed_rows) for item in result.results)
        if failed:
            logger.warning(
                "backfill pass left rows unrepaired",
                extra={"role": self.role, "operation": "backfill", "rows_failed": failed},
            )
        return result.rows_updated > 0
