from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

CellValue = str | int | float | bool | None
IdKind = Literal["legacy", "current"]


class ErrorResponse(BaseModel):
    detail: str


class WorkerMetrics(BaseModel):
    started: bool
    stopped: bool
    ticks_total: int
    repairs_total: int
    idle_ticks_total: int
    errors_total: int


class HealthResponse(BaseModel):
    status: str
    role: str
    mode: str


class ReadyResponse(BaseModel):
    status: str
    role: str
    mode: str
    worker_loop_enabled: bool
    worker_loop_ready: bool
    worker_metrics: WorkerMetrics


class CreateSubmissionRequest(BaseModel):
    confirmation_token: str = Field(min_length=1, max_length=256)
    fields: dict[str, Any] = Field(default_factory=dict)
    submission_type: str | None = Field(default=None, max_length=128)


class CreateSubmissionResponse(BaseModel):
    table: str
    row_position: int = Field(ge=1)
    confirmation_token: str
    status: str
    identifiers: dict[str, CellValue]
    identifier_error: str | None = None


class RowResponse(BaseModel):
    table: str
    row_position: int = Field(ge=1)
    fields: dict[str, CellValue]


class UpdateStatusRequest(BaseModel):
    table: str = Field(min_length=1, max_length=128)
    status: str | None = Field(default=None, max_length=128)
    actor: str = Field(min_length=1, max_length=256)
    id_kind: IdKind | None = None


class UpdateStatusResponse(BaseModel):
    table: str
    row_position: int
    status: str
    updated_at: str


class UpdateCommentsRequest(BaseModel):
    table: str = Field(min_length=1, max_length=128)
    comments: str = Field(max_length=10000)
    actor: str = Field(min_length=1, max_length=256)
    id_kind: IdKind | None = None


class UpdateCommentsResponse(BaseModel):
    table: str
    row_position: int
    updated_at: str


class AttachFileRequest(BaseModel):
    table: str = Field(min_length=1, max_length=128)
    field_name: str = Field(min_length=1, max_length=256)
    url: str = Field(min_length=1, max_length=2048)
    timestamp: datetime | None = None
    id_kind: IdKind | None = None


class AttachFileResponse(BaseModel):
    table: str
    row_position: int
    field_name: str
    url: str
    uploaded_at: str


class TableColumnsResponse(BaseModel):
    table: str
    columns: list[str]


class RepairIdentifiersRequest(BaseModel):
    table: str | None = Field(default=None, min_length=1, max_length=128)


class TableRepairSummary(BaseModel):
    table: str
    rows_updated: int
    rows_missing: int
    failed_rows: list[int]


class RepairIdentifiersResponse(BaseModel):
    rows_updated: int
    tables: list[TableRepairSummary]
