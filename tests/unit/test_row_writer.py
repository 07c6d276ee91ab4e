import asyncio
from datetime import UTC, datetime

import pytest

from formstore.domain.errors import StorageWriteError
from formstore.domain.models import Record
from formstore.lib.tables.schema import SchemaManager
from formstore.lib.tables.writer import RowWriter
from formstore.repositories.stub import InMemoryTabularBackend

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _writer(backend: InMemoryTabularBackend) -> RowWriter:
    return RowWriter(schema=SchemaManager(backend=backend), backend=backend, clock=lambda: FIXED_NOW)


@pytest.mark.unit
def test_first_append_builds_header_in_order_of_appearance() -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    result = asyncio.run(writer.append_row("T", {"Organization": "Club A", "Event": "Gala"}))

    assert result.row_position == 1
    assert backend.tables["T"].header == ["Timestamp", "Organization", "Event"]
    assert backend.tables["T"].rows == [[FIXED_NOW.isoformat(), "Club A", "Gala"]]


@pytest.mark.unit
def test_registered_table_gets_blank_identifier_columns() -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    asyncio.run(writer.append_row("Orders", {"Item": "Chairs", "Quantity": 12}))

    assert backend.tables["Orders"].header == [
        "Timestamp",
        "Item",
        "Quantity",
        "Historical ID",
        "Submission ID",
        "Semester",
    ]
    assert backend.tables["Orders"].rows[0][1:] == ["Chairs", 12, "", "", ""]


@pytest.mark.unit
def test_append_aligns_values_to_existing_columns_and_extends_header() -> None:
    backend = InMemoryTabularBackend()
    backend.seed("T", ["Timestamp", "Organization", "Event Date"], [["t0", "Old", "2023-01-01"]])
    writer = _writer(backend)

    result = asyncio.run(writer.append_row("T", {"event_date": "2024-05-01", "Venue": "Hall", "organization": "New"}))

    assert result.row_position == 2
    assert backend.tables["T"].header == ["Timestamp", "Organization", "Event Date", "Venue"]
    assert backend.tables["T"].rows[1] == [FIXED_NOW.isoformat(), "New", "2024-05-01", "Hall"]


@pytest.mark.unit
def test_blank_and_structured_values_add_no_columns() -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    asyncio.run(
        writer.append_row(
            "T",
            {"Name": "Ada", "Empty": "  ", "Missing": None, "Attachment": {"bytes": "..."}, "Tags": ["a"]},
        )
    )

    assert backend.tables["T"].header == ["Timestamp", "Name"]


@pytest.mark.unit
def test_alias_fields_share_one_column_and_first_value_wins() -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    asyncio.run(writer.append_row("T", {"Event Date": "first", "Event_Date": "second"}))

    assert backend.tables["T"].header == ["Timestamp", "Event Date"]
    assert backend.tables["T"].rows[0][1] == "first"


@pytest.mark.unit
def test_record_supplied_timestamp_is_kept() -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    asyncio.run(writer.append_row("T", Record(extra={"Timestamp": "2020-01-01T00:00:00", "Name": "Ada"})))

    assert backend.tables["T"].rows[0] == ["2020-01-01T00:00:00", "Ada"]


@pytest.mark.unit
def test_concurrent_appends_get_distinct_positions() -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    async def _run() -> list[int]:
        results = await asyncio.gather(*(writer.append_row("T", {"N": i}) for i in range(20)))
        return [result.row_position for result in results]

    positions = asyncio.run(_run())

    assert sorted(positions) == list(range(1, 21))


@pytest.mark.unit
@pytest.mark.parametrize("table", ["", "   "])
def test_unresolvable_table_is_a_storage_write_failure(table: str) -> None:
    backend = InMemoryTabularBackend()
    writer = _writer(backend)

    with pytest.raises(StorageWriteError):
        asyncio.run(writer.append_row(table, {"Name": "Ada"}))
    assert backend.tables == {}


@pytest.mark.unit
def test_rejected_write_surfaces_storage_write_failure() -> None:
    backend = InMemoryTabularBackend(fail_writes=True)
    writer = _writer(backend)

    with pytest.raises(StorageWriteError):
        asyncio.run(writer.append_row("T", {"Name": "Ada"}))
    assert backend.tables == {}


@pytest.mark.unit
def test_unreadable_store_surfaces_storage_write_failure() -> None:
    backend = InMemoryTabularBackend(fail_reads=True)
    writer = _writer(backend)

    with pytest.raises(StorageWriteError):
        asyncio.run(writer.append_row("T", {"Name": "Ada"}))
    assert backend.tables == {}
