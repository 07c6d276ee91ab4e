from __future__ import annotations

from formstore.domain.dto import AttachFileCommand, AttachFileResult
from formstore.domain.errors import DomainValidationError
from formstore.lib.tables.factory import TableStore

COMPONENT_ID = "workflow.submission.attach_file"


async def attach_file_link(store: TableStore, cmd: AttachFileCommand) -> AttachFileResult:
    """Record a link to an already uploaded file on an existing row."""
    field_name = cmd.field_name.strip()
    url = cmd.url.strip()
    if not field_name:
        raise DomainValidationError("field name is required")
    if not url:
        raise DomainValidationError("file url is required")

    row_position = await store.locator.require_row(cmd.table, cmd.row_id)
    uploaded_at = (cmd.timestamp or store.clock()).isoformat()
    await store.locator.update_cells(
        cmd.table,
        row_position,
        {field_name: url, f"{field_name} Uploaded At": uploaded_at},
    )
    return AttachFileResult(
        table=cmd.table,
        row_position=row_position,
        field_name=field_name,
        url=url,
        uploaded_at=uploaded_at,
    )
