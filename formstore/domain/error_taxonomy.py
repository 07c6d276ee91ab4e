from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from formstore.domain.errors import (
    CounterStoreUnavailableError,
    DomainValidationError,
    RowNotFoundError,
    StorageWriteError,
)

# Canonical error vocabulary for store operations.
ErrorCode = Literal[
    "schema_conflict",
    "storage_write_failure",
    "row_not_found",
    "allocation_degraded",
    "validation_error",
    "internal_error",
]

# surfaced: returned to the caller as a failure.
# reported: the surrounding workflow continues and carries the code in its result.
# recovered: handled locally, only logged.
Disposition = Literal["surfaced", "reported", "recovered"]

CANONICAL_ERROR_CODES: tuple[ErrorCode, ...] = (
    "schema_conflict",
    "storage_write_failure",
    "row_not_found",
    "allocation_degraded",
    "validation_error",
    "internal_error",
)

RECOVERED_ERROR_CODES: frozenset[ErrorCode] = frozenset({"schema_conflict", "allocation_degraded"})

# Operations whose failures never abort the surrounding submission workflow.
REPORTING_OPERATIONS: frozenset[str] = frozenset({"assign_identifiers", "backfill"})

# Operation-specific allowlist. Codes outside it collapse to internal_error.
OPERATION_ERROR_MAP: Mapping[str, frozenset[ErrorCode]] = {
    "append_row": frozenset(
        {"schema_conflict", "storage_write_failure", "validation_error", "internal_error"}
    ),
    "assign_identifiers": frozenset(
        {
            "schema_conflict",
            "storage_write_failure",
            "row_not_found",
            "allocation_degraded",
            "internal_error",
        }
    ),
    "backfill": frozenset(
        {
            "schema_conflict",
            "storage_write_failure",
            "row_not_found",
            "allocation_degraded",
            "internal_error",
        }
    ),
    "status_update": frozenset(
        {"schema_conflict", "storage_write_failure", "row_not_found", "validation_error", "internal_error"}
    ),
    "comment_update": frozenset(
        {"schema_conflict", "storage_write_failure", "row_not_found", "validation_error", "internal_error"}
    ),
    "attach_file": frozenset(
        {"schema_conflict", "storage_write_failure", "row_not_found", "validation_error", "internal_error"}
    ),
}


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_ERROR_CODES


def error_code_for(exc: BaseException) -> ErrorCode:
    if isinstance(exc, RowNotFoundError):
        return "row_not_found"
    if isinstance(exc, StorageWriteError):
        return "storage_write_failure"
    if isinstance(exc, CounterStoreUnavailableError):
        return "allocation_degraded"
    if isinstance(exc, DomainValidationError):
        return "validation_error"
    return "internal_error"


def resolve_operation_error(*, operation: str, code: str) -> ErrorCode:
    allowed = OPERATION_ERROR_MAP.get(operation, frozenset({"internal_error"}))
    if code in allowed and is_canonical_error_code(code):
        return code
    return "internal_error"


def resolve_disposition(*, operation: str, code: str) -> Disposition:
    resolved = resolve_operation_error(operation=operation, code=code)
    if resolved in RECOVERED_ERROR_CODES:
        return "recovered"
    if operation in REPORTING_OPERATIONS:
        return "reported"
    return "surfaced"
