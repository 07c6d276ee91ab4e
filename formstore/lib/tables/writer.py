from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
import logging

from formstore.domain.contracts import TabularBackend
from formstore.domain.errors import StorageWriteError
from formstore.domain.layouts import TIMESTAMP_COLUMN, TableLayout, layout_for
from formstore.domain.models import BLANK, AppendResult, Cell, Record
from formstore.lib.tables.columns import ColumnIndex
from formstore.lib.tables.schema import SchemaManager

logger = logging.getLogger("formstore.tables")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class RowWriter:
    schema: SchemaManager
    backend: TabularBackend
    layouts: dict[str, TableLayout] | None = None
    clock: Callable[[], datetime] = utc_now

    async def append_row(self, table: str, record: Record | Mapping[str, object]) -> AppendResult:
        """Append one record as a new row, extending the header as needed.

        Column order for a fresh table is the timestamp, then the record's
        fields in order of first appearance, then the identifier columns.
        Identifier cells are left blank for IdentifierAllocator.
        """
        if not table or not table.strip():
            raise StorageWriteError("append_row rejected: table name is empty")
        if not isinstance(record, Record):
            record = Record.from_mapping(record)

        layout = layout_for(table, self.layouts)
        values = list(record.columns())
        required = [TIMESTAMP_COLUMN, *(name for name, _value in values), *layout.identifier_column_names]
        await self.schema.ensure_columns(table, required)

        index = ColumnIndex.build(await self.schema.get_columns(table))
        cells: list[Cell] = [BLANK] * len(index.header)
        filled: set[int] = set()
        identifier_positions = {index.find(name) for name in layout.identifier_column_names}

        for name, value in values:
            position = index.find(name)
            # Aliases share a column with the first-seen spelling; the first value wins.
            if position is None or position in filled or position in identifier_positions:
                continue
            cells[position] = value
            filled.add(position)

        timestamp_position = index.find(TIMESTAMP_COLUMN)
        if timestamp_position is not None and timestamp_position not in filled:
            cells[timestamp_position] = self.clock().isoformat()

        row_position = await self.backend.append_row(table, cells)
        logger.info("row appended", extra={"table": table, "row_position": row_position, "operation": "append_row"})
        return AppendResult(table=table, row_position=row_position)
