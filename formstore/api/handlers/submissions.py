from __future__ import annotations

from typing import Any

from formstore.api.handlers.deps import ApiDeps, row_key, table_name
from formstore.api.schemas import CreateSubmissionResponse, RowResponse
from formstore.domain.dto import SubmitRecordCommand
from formstore.domain.use_cases.submissions import submit_record

COMPONENT_ID = "api.create_submission"
COMPONENT_ID_READ = "api.get_submission_row"


async def create_submission_handler(
    *,
    confirmation_token: str,
    fields: dict[str, Any],
    submission_type: str | None,
    api_deps: ApiDeps,
) -> CreateSubmissionResponse:
    result = await submit_record(
        api_deps.store,
        SubmitRecordCommand(
            confirmation_token=confirmation_token,
            fields=fields,
            submission_type=submission_type,
        ),
    )
    return CreateSubmissionResponse(
        table=result.table,
        row_position=result.row_position,
        confirmation_token=result.confirmation_token,
        status=result.status,
        identifiers=result.identifiers,
        identifier_error=result.identifier_error,
    )


async def get_submission_row_handler(
    *,
    row_id: str,
    table: str,
    id_kind: str | None,
    api_deps: ApiDeps,
) -> RowResponse:
    name = table_name(table)
    locator = api_deps.store.locator
    row_position = await locator.require_row(name, row_key(row_id, id_kind))
    return RowResponse(
        table=name,
        row_position=row_position,
        fields=await locator.read_row(name, row_position),
    )
