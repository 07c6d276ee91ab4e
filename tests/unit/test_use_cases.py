import asyncio
import logging
from datetime import UTC, datetime

import pytest

from formstore.domain.dto import (
    AttachFileCommand,
    SubmitRecordCommand,
    UpdateCommentsCommand,
    UpdateStatusCommand,
)
from formstore.domain.errors import (
    DomainValidationError,
    RowNotFoundError,
    StorageReadError,
    StorageWriteError,
    UnknownTableError,
)
from formstore.domain.models import CurrentId
from formstore.domain.use_cases.attachments import attach_file_link
from formstore.domain.use_cases.status import update_comments, update_status
from formstore.domain.use_cases.submissions import submit_record
from formstore.lib.tables.factory import TableStore, build_table_store
from formstore.repositories.stub import InMemoryCounterStore, InMemoryTabularBackend

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class RowReadFailingBackend(InMemoryTabularBackend):
    async def read_row(self, table: str, position: int) -> list[object] | None:
        raise StorageReadError(f"read_row failed for table={table} row={position}: connection refused")


def _store(backend: InMemoryTabularBackend | None = None) -> TableStore:
    return build_table_store(
        backend=backend or InMemoryTabularBackend(),
        counters=InMemoryCounterStore(),
        clock=lambda: FIXED_NOW,
    )


def _row(store: TableStore, table: str, position: int) -> dict[str, object]:
    return asyncio.run(store.locator.read_row(table, position))


@pytest.mark.unit
def test_submit_record_routes_appends_and_assigns() -> None:
    store = _store()

    result = asyncio.run(
        submit_record(
            store,
            SubmitRecordCommand(
                confirmation_token="CONF-123",
                fields={"Organization": "Club A", "Item": "Chairs", "Status": "pending"},
                submission_type="order",
            ),
        )
    )

    assert result.table == "Orders"
    assert result.row_position == 1
    assert result.status == "New"
    assert result.identifiers == {"Historical": 1, "Submission": 1, "Semester": "Spring 2024"}
    assert result.identifier_error is None
    row = _row(store, "Orders", 1)
    assert row["Confirmation Number"] == "CONF-123"
    assert row["Status"] == "New"
    assert row["Organization"] == "Club A"


@pytest.mark.unit
def test_submit_record_infers_table_from_fields() -> None:
    store = _store()

    result = asyncio.run(
        submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"File Link": "https://x/y.pdf"}))
    )

    assert result.table == "Documents"


@pytest.mark.unit
def test_submit_record_requires_confirmation_token() -> None:
    with pytest.raises(DomainValidationError):
        asyncio.run(submit_record(_store(), SubmitRecordCommand(confirmation_token="  ", fields={"A": 1})))


@pytest.mark.unit
def test_submit_record_rejects_unknown_declared_type() -> None:
    with pytest.raises(UnknownTableError):
        asyncio.run(
            submit_record(
                _store(),
                SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1}, submission_type="spaceship"),
            )
        )


@pytest.mark.unit
def test_submit_record_surfaces_append_failure() -> None:
    store = _store(InMemoryTabularBackend(fail_writes=True))

    with pytest.raises(StorageWriteError):
        asyncio.run(submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1})))


@pytest.mark.unit
def test_identifier_failure_is_reported_not_raised(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    backend = InMemoryTabularBackend()
    store = _store(backend)

    async def _broken_assign(table: str, row_position: int):
        raise StorageWriteError("sheet unavailable")

    monkeypatch.setattr(store.allocator, "assign_identifiers", _broken_assign)

    with caplog.at_level(logging.WARNING, logger="formstore.workflow"):
        result = asyncio.run(submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1})))

    assert result.row_position == 1
    assert result.identifiers == {}
    assert result.identifier_error == "storage_write_failure"
    assert len(backend.tables["Orders"].rows) == 1
    assert any(getattr(record, "error_code", None) == "storage_write_failure" for record in caplog.records)


@pytest.mark.unit
def test_unreadable_row_after_append_is_reported_not_raised() -> None:
    backend = RowReadFailingBackend()
    store = _store(backend)

    result = asyncio.run(submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1})))

    assert result.row_position == 1
    assert result.identifier_error == "storage_write_failure"
    assert len(backend.tables["Orders"].rows) == 1


@pytest.mark.unit
def test_update_status_normalizes_and_audits() -> None:
    store = _store()
    asyncio.run(submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1})))

    result = asyncio.run(
        update_status(store, UpdateStatusCommand(row_id="1", table="Orders", status="shipped", actor="ops@example.org"))
    )

    assert result.status == "Delivered"
    row = _row(store, "Orders", 1)
    assert row["Status"] == "Delivered"
    assert row["Status Updated By"] == "ops@example.org"
    assert row["Status Updated At"] == FIXED_NOW.isoformat()


@pytest.mark.unit
def test_update_status_on_unknown_row_fails() -> None:
    store = _store()

    with pytest.raises(RowNotFoundError):
        asyncio.run(update_status(store, UpdateStatusCommand(row_id=CurrentId(3), table="Orders", status="done", actor="a")))


@pytest.mark.unit
def test_update_status_requires_actor() -> None:
    with pytest.raises(DomainValidationError):
        asyncio.run(update_status(_store(), UpdateStatusCommand(row_id="1", table="Orders", status="done", actor=" ")))


@pytest.mark.unit
def test_update_comments_writes_audit_pair() -> None:
    store = _store()
    asyncio.run(submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1})))

    asyncio.run(
        update_comments(store, UpdateCommentsCommand(row_id=1, table="Orders", comments="call back", actor="desk"))
    )

    row = _row(store, "Orders", 1)
    assert row["Comments"] == "call back"
    assert row["Comments Updated By"] == "desk"


@pytest.mark.unit
def test_attach_file_link_records_url_and_time() -> None:
    store = _store()
    asyncio.run(submit_record(store, SubmitRecordCommand(confirmation_token="c-1", fields={"A": 1})))
    uploaded = datetime(2024, 3, 2, 9, 30, tzinfo=UTC)

    result = asyncio.run(
        attach_file_link(
            store,
            AttachFileCommand(
                row_id="1",
                table="Orders",
                field_name="Invoice",
                url="https://files.example.org/inv.pdf",
                timestamp=uploaded,
            ),
        )
    )

    assert result.row_position == 1
    assert result.uploaded_at == uploaded.isoformat()
    row = _row(store, "Orders", 1)
    assert row["Invoice"] == "https://files.example.org/inv.pdf"
    assert row["Invoice Uploaded At"] == uploaded.isoformat()


@pytest.mark.unit
@pytest.mark.parametrize(("field_name", "url"), [("", "https://x"), ("Invoice", "  ")])
def test_attach_file_link_validates_input(field_name: str, url: str) -> None:
    with pytest.raises(DomainValidationError):
        asyncio.run(
            attach_file_link(_store(), AttachFileCommand(row_id="1", table="Orders", field_name=field_name, url=url))
        )
