from __future__ import annotations

from formstore.api.handlers.deps import ApiDeps, row_key, table_name
from formstore.api.schemas import UpdateCommentsResponse, UpdateStatusResponse
from formstore.domain.dto import UpdateCommentsCommand, UpdateStatusCommand
from formstore.domain.use_cases.status import update_comments, update_status

COMPONENT_ID_STATUS = "api.update_submission_status"
COMPONENT_ID_COMMENTS = "api.update_submission_comments"


async def update_status_handler(
    *,
    row_id: str,
    table: str,
    status: str | None,
    actor: str,
    id_kind: str | None,
    api_deps: ApiDeps,
) -> UpdateStatusResponse:
    result = await update_status(
        api_deps.store,
        UpdateStatusCommand(row_id=row_key(row_id, id_kind), table=table_name(table), status=status, actor=actor),
    )
    return UpdateStatusResponse(
        table=result.table,
        row_position=result.row_position,
        status=result.status,
        updated_at=result.updated_at,
    )


async def update_comments_handler(
    *,
    row_id: str,
    table: str,
    comments: str,
    actor: str,
    id_kind: str | None,
    api_deps: ApiDeps,
) -> UpdateCommentsResponse:
    result = await update_comments(
        api_deps.store,
        UpdateCommentsCommand(row_id=row_key(row_id, id_kind), table=table_name(table), comments=comments, actor=actor),
    )
    return UpdateCommentsResponse(table=result.table, row_position=result.row_position, updated_at=result.updated_at)
