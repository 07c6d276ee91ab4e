from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from formstore.domain.error_taxonomy import ErrorCode
from formstore.domain.models import BackfillResult, Cell, RowKey


@dataclass(frozen=True)
class SubmitRecordCommand:
    confirmation_token: str
    fields: Mapping[str, object]
    submission_type: str | None = None


@dataclass(frozen=True)
class SubmitRecordResult:
    table: str
    row_position: int
    confirmation_token: str
    status: str
    identifiers: dict[str, Cell] = field(default_factory=dict)
    identifier_error: ErrorCode | None = None


@dataclass(frozen=True)
class UpdateStatusCommand:
    row_id: RowKey | str | int
    table: str
    status: str | None
    actor: str


@dataclass(frozen=True)
class UpdateStatusResult:
    table: str
    row_position: int
    status: str
    updated_at: str


@dataclass(frozen=True)
class UpdateCommentsCommand:
    row_id: RowKey | str | int
    table: str
    comments: str
    actor: str


@dataclass(frozen=True)
class UpdateCommentsResult:
    table: str
    row_position: int
    updated_at: str


@dataclass(frozen=True)
class AttachFileCommand:
    row_id: RowKey | str | int
    table: str
    field_name: str
    url: str
    timestamp: datetime | None = None


@dataclass(frozen=True)
class AttachFileResult:
    table: str
    row_position: int
    field_name: str
    url: str
    uploaded_at: str


@dataclass(frozen=True)
class RepairIdentifiersCommand:
    table: str | None = None
    known_tables: tuple[str, ...] = ()


@dataclass(frozen=True)
class RepairIdentifiersResult:
    results: list[BackfillResult]

    @property
    def rows_updated(self) -> int:
        return sum(result.rows_updated for result in self.results)
