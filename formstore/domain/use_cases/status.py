from __future__ import annotations

from formstore.domain.dto import (
    UpdateCommentsCommand,
    UpdateCommentsResult,
    UpdateStatusCommand,
    UpdateStatusResult,
)
from formstore.domain.errors import DomainValidationError
from formstore.domain.layouts import (
    COMMENTS_COLUMN,
    COMMENTS_UPDATED_AT_COLUMN,
    COMMENTS_UPDATED_BY_COLUMN,
    STATUS_COLUMN,
    STATUS_UPDATED_AT_COLUMN,
    STATUS_UPDATED_BY_COLUMN,
)
from formstore.domain.statuses import normalize_status, to_display_string
from formstore.lib.tables.factory import TableStore

COMPONENT_ID_STATUS = "workflow.submission.update_status"
COMPONENT_ID_COMMENTS = "workflow.submission.update_comments"


async def update_status(store: TableStore, cmd: UpdateStatusCommand) -> UpdateStatusResult:
    actor = cmd.actor.strip()
    if not actor:
        raise DomainValidationError("actor is required")
    status = to_display_string(normalize_status(cmd.status))
    row_position = await store.locator.require_row(cmd.table, cmd.row_id)
    updated_at = store.clock().isoformat()
    await store.locator.update_cells(
        cmd.table,
        row_position,
        {
            STATUS_COLUMN: status,
            STATUS_UPDATED_BY_COLUMN: actor,
            STATUS_UPDATED_AT_COLUMN: updated_at,
        },
    )
    return UpdateStatusResult(table=cmd.table, row_position=row_position, status=status, updated_at=updated_at)


async def update_comments(store: TableStore, cmd: UpdateCommentsCommand) -> UpdateCommentsResult:
    actor = cmd.actor.strip()
    if not actor:
        raise DomainValidationError("actor is required")
    row_position = await store.locator.require_row(cmd.table, cmd.row_id)
    updated_at = store.clock().isoformat()
    await store.locator.update_cells(
        cmd.table,
        row_position,
        {
            COMMENTS_COLUMN: cmd.comments,
            COMMENTS_UPDATED_BY_COLUMN: actor,
            COMMENTS_UPDATED_AT_COLUMN: updated_at,
        },
    )
    return UpdateCommentsResult(table=cmd.table, row_position=row_position, updated_at=updated_at)
