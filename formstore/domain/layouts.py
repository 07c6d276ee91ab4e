from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from formstore.domain.errors import DomainValidationError


class IdentifierKind(StrEnum):
    # Never reused across the full history of a table.
    HISTORICAL = "Historical"
    # Scoped to the current semester/dataset.
    SUBMISSION = "Submission"
    # Derived "Season YYYY" label, not counter-backed.
    SEMESTER = "Semester"


COUNTER_KINDS: tuple[IdentifierKind, ...] = (IdentifierKind.HISTORICAL, IdentifierKind.SUBMISSION)

TIMESTAMP_COLUMN = "Timestamp"
STATUS_COLUMN = "Status"
STATUS_UPDATED_BY_COLUMN = "Status Updated By"
STATUS_UPDATED_AT_COLUMN = "Status Updated At"
COMMENTS_COLUMN = "Comments"
COMMENTS_UPDATED_BY_COLUMN = "Comments Updated By"
COMMENTS_UPDATED_AT_COLUMN = "Comments Updated At"
CONFIRMATION_COLUMN = "Confirmation Number"

DEFAULT_IDENTIFIER_COLUMNS: tuple[tuple[IdentifierKind, str], ...] = (
    (IdentifierKind.HISTORICAL, "Historical ID"),
    (IdentifierKind.SUBMISSION, "Submission ID"),
    (IdentifierKind.SEMESTER, "Semester"),
)


@dataclass(frozen=True)
class TableLayout:
    table: str
    identifier_columns: tuple[tuple[IdentifierKind, str], ...] = ()
    legacy_kind: IdentifierKind | None = IdentifierKind.HISTORICAL
    current_kind: IdentifierKind | None = IdentifierKind.SUBMISSION

    @property
    def identifier_column_names(self) -> tuple[str, ...]:
        return tuple(column for _kind, column in self.identifier_columns)

    def column_for(self, kind: IdentifierKind) -> str:
        for candidate_kind, column in self.identifier_columns:
            if candidate_kind == kind:
                return column
        if kind == IdentifierKind.SEMESTER:
            return "Semester"
        return f"{kind.value} ID"

    def locator_columns(self) -> tuple[str, ...]:
        columns: list[str] = []
        for kind in (self.legacy_kind, self.current_kind):
            if kind is not None:
                columns.append(self.column_for(kind))
        return tuple(columns)


TABLE_LAYOUTS: dict[str, TableLayout] = {
    "Orders": TableLayout(table="Orders", identifier_columns=DEFAULT_IDENTIFIER_COLUMNS),
    "Documents": TableLayout(table="Documents", identifier_columns=DEFAULT_IDENTIFIER_COLUMNS),
    "Feedback": TableLayout(table="Feedback", identifier_columns=DEFAULT_IDENTIFIER_COLUMNS),
}


def layout_for(table: str, layouts: dict[str, TableLayout] | None = None) -> TableLayout:
    registry = TABLE_LAYOUTS if layouts is None else layouts
    layout = registry.get(table)
    if layout is not None:
        return layout
    folded = table.strip().casefold()
    for name, candidate in registry.items():
        if name.casefold() == folded:
            return candidate
    return TableLayout(table=table)


def identifier_kind(value: IdentifierKind | str) -> IdentifierKind:
    try:
        return IdentifierKind(value)
    except ValueError:
        supported = ", ".join(kind.value for kind in IdentifierKind)
        raise DomainValidationError(f"unknown identifier kind '{value}'; expected one of: {supported}") from None


def counter_key(table: str, kind: IdentifierKind | str) -> str:
    return f"{table}:{identifier_kind(kind).value}"


def semester_label(moment: datetime) -> str:
    if moment.month <= 5:
        season = "Spring"
    elif moment.month <= 7:
        season = "Summer"
    else:
        season = "Fall"
    return f"{season} {moment.year}"
