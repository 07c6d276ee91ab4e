from __future__ import annotations

from datetime import datetime

from formstore.api.handlers.deps import ApiDeps, row_key, table_name
from formstore.api.schemas import AttachFileResponse
from formstore.domain.dto import AttachFileCommand
from formstore.domain.use_cases.attachments import attach_file_link

COMPONENT_ID = "api.attach_submission_file"


async def attach_file_handler(
    *,
    row_id: str,
    table: str,
    field_name: str,
    url: str,
    timestamp: datetime | None,
    id_kind: str | None,
    api_deps: ApiDeps,
) -> AttachFileResponse:
    """Only the link is recorded; the file itself lives wherever it was uploaded."""
    result = await attach_file_link(
        api_deps.store,
        AttachFileCommand(
            row_id=row_key(row_id, id_kind),
            table=table_name(table),
            field_name=field_name,
            url=url,
            timestamp=timestamp,
        ),
    )
    return AttachFileResponse(
        table=result.table,
        row_position=result.row_position,
        field_name=result.field_name,
        url=result.url,
        uploaded_at=result.uploaded_at,
    )
