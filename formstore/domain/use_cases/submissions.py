from __future__ import annotations

from dataclasses import replace
import logging

from formstore.domain.dto import SubmitRecordCommand, SubmitRecordResult
from formstore.domain.errors import DomainError, DomainValidationError
from formstore.domain.error_taxonomy import error_code_for, resolve_disposition, resolve_operation_error
from formstore.domain.models import Record
from formstore.domain.routing import resolve_table
from formstore.domain.statuses import normalize_status, to_display_string
from formstore.lib.tables.factory import TableStore

COMPONENT_ID = "workflow.submission.create"

logger = logging.getLogger("formstore.workflow")


async def submit_record(store: TableStore, cmd: SubmitRecordCommand) -> SubmitRecordResult:
    """Persist one form submission and give it identifiers.

    A failed append is raised to the caller. A failed identifier assignment is
    only reported: the row is already stored and backfill will finish it.
    """
    token = cmd.confirmation_token.strip()
    if not token:
        raise DomainValidationError("confirmation token is required")

    record = Record.from_mapping(cmd.fields)
    declared_type = cmd.submission_type or record.submission_type
    table = resolve_table(declared_type=declared_type, field_names=record.extra.keys()).value
    status = to_display_string(normalize_status(record.status))
    record = replace(record, confirmation_token=token, status=status)

    appended = await store.writer.append_row(table, record)

    try:
        assigned = await store.allocator.assign_identifiers(table, appended.row_position)
    except DomainError as exc:
        code = resolve_operation_error(operation="assign_identifiers", code=error_code_for(exc))
        if resolve_disposition(operation="assign_identifiers", code=code) == "surfaced":
            raise
        logger.warning(
            "identifier assignment failed; row kept for backfill",
            extra={
                "table": table,
                "row_position": appended.row_position,
                "operation": "assign_identifiers",
                "error_code": code,
            },
        )
        return SubmitRecordResult(
            table=table,
            row_position=appended.row_position,
            confirmation_token=token,
            status=status,
            identifier_error=code,
        )

    return SubmitRecordResult(
        table=table,
        row_position=appended.row_position,
        confirmation_token=token,
        status=status,
        identifiers=dict(assigned.assigned),
    )
