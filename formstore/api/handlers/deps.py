from __future__ import annotations

from dataclasses import dataclass

from formstore.domain.errors import DomainValidationError
from formstore.domain.models import CurrentId, LegacyId, RowKey
from formstore.domain.routing import parse_table_selector
from formstore.lib.tables import DEFAULT_KNOWN_TABLES
from formstore.lib.tables.allocator import parse_identifier
from formstore.lib.tables.factory import TableStore


@dataclass(frozen=True)
class ApiDeps:
    store: TableStore
    known_tables: tuple[str, ...] = DEFAULT_KNOWN_TABLES
    mode: str = "memory"


def table_name(raw: str) -> str:
    return parse_table_selector(raw).value


def row_key(row_id: str, id_kind: str | None) -> RowKey | str:
    """Turn a path id into a lookup key; without a kind both id columns are tried."""
    if id_kind is None:
        return row_id
    value = parse_identifier(row_id)
    if value is None:
        raise DomainValidationError(f"row id must be a non-negative integer: {row_id}")
    if id_kind == "legacy":
        return LegacyId(value)
    return CurrentId(value)
