from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import logging

from formstore.domain.contracts import TabularBackend
from formstore.domain.errors import RowNotFoundError
from formstore.domain.layouts import TableLayout, layout_for
from formstore.domain.models import BLANK, Cell, CurrentId, LegacyId, RowKey, is_blank
from formstore.lib.tables.schema import SchemaManager

logger = logging.getLogger("formstore.tables")


def _as_number(value: object) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def loosely_equal(cell: Cell, wanted: object) -> bool:
    """Type-coercing comparison: 7, "7" and "7.0" are the same id."""
    if is_blank(cell) or is_blank(wanted):
        return False
    cell_number = _as_number(cell)
    wanted_number = _as_number(wanted)
    if cell_number is not None and wanted_number is not None:
        return cell_number == wanted_number
    return str(cell).strip() == str(wanted).strip()


@dataclass
class RowLocator:
    schema: SchemaManager
    backend: TabularBackend
    layouts: dict[str, TableLayout] | None = None

    def _candidate_columns(self, table: str, row_id: RowKey | str | int) -> tuple[str, ...]:
        layout = layout_for(table, self.layouts)
        if isinstance(row_id, LegacyId) and layout.legacy_kind is not None:
            return (layout.column_for(layout.legacy_kind),)
        if isinstance(row_id, CurrentId) and layout.current_kind is not None:
            return (layout.column_for(layout.current_kind),)
        return layout.locator_columns()

    async def find_row(self, table: str, row_id: RowKey | str | int) -> int | None:
        """Return the 1-based position of the first row holding ``row_id``.

        A plain id is matched against the legacy and the current identifier
        column; LegacyId/CurrentId restrict the match to one of them. Rows are
        scanned top to bottom and the first match wins even if a later row
        carries the same id.
        """
        wanted = row_id.value if isinstance(row_id, (LegacyId, CurrentId)) else row_id
        index = await self.schema.column_index(table)
        positions = [
            position
            for position in (index.find(column) for column in self._candidate_columns(table, row_id))
            if position is not None
        ]
        if not positions:
            return None
        for row_number, row in enumerate(await self.backend.read_rows(table), start=1):
            for position in positions:
                if position < len(row) and loosely_equal(row[position], wanted):
                    return row_number
        return None

    async def require_row(self, table: str, row_id: RowKey | str | int) -> int:
        position = await self.find_row(table, row_id)
        if position is None:
            raise RowNotFoundError(table=table, row_id=row_id)
        return position

    async def read_row(self, table: str, row_position: int) -> dict[str, Cell]:
        header = await self.schema.get_columns(table)
        row = await self.backend.read_row(table, row_position)
        if row is None:
            raise RowNotFoundError(table=table, row_id=row_position)
        return {name: (row[index] if index < len(row) else BLANK) for index, name in enumerate(header)}

    async def update_cells(self, table: str, row_position: int, values: Mapping[str, Cell]) -> dict[str, int]:
        """Write field values into an existing row, creating columns as needed.

        Last write wins: there is no check against a concurrent edit of the
        same cell.
        """
        if await self.backend.read_row(table, row_position) is None:
            raise RowNotFoundError(table=table, row_id=row_position)
        await self.schema.ensure_columns(table, values.keys())
        index = await self.schema.column_index(table)
        written: dict[str, int] = {}
        for name, value in values.items():
            position = index.find(name)
            if position is None:
                continue
            await self.backend.write_cell(table, row_position, position, value)
            written[index.header[position]] = position
        logger.info(
            "cells updated",
            extra={"table": table, "row_position": row_position, "operation": "update_cells", "columns": list(written)},
        )
        return written

    async def rows_missing(self, table: str, columns: Sequence[str]) -> list[int]:
        """Positions of rows where any of ``columns`` is blank or absent."""
        index = await self.schema.column_index(table)
        positions = [index.find(column) for column in columns]
        missing: list[int] = []
        for row_number, row in enumerate(await self.backend.read_rows(table), start=1):
            for position in positions:
                if position is None or position >= len(row) or is_blank(row[position]):
                    missing.append(row_number)
                    break
        return missing
