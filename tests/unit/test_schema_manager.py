import asyncio
import logging

import pytest

from formstore.lib.tables.columns import ColumnIndex
from formstore.lib.tables.schema import SchemaManager
from formstore.repositories.stub import InMemoryTabularBackend


@pytest.mark.unit
def test_get_columns_of_missing_table_is_empty() -> None:
    schema = SchemaManager(backend=InMemoryTabularBackend())

    assert asyncio.run(schema.get_columns("Nowhere")) == []


@pytest.mark.unit
def test_ensure_columns_appends_in_request_order_and_is_idempotent() -> None:
    backend = InMemoryTabularBackend()
    schema = SchemaManager(backend=backend)

    async def _run() -> tuple[tuple[str, ...], tuple[str, ...], list[str]]:
        first = await schema.ensure_columns("T", ["Timestamp", "Organization", "Event"])
        second = await schema.ensure_columns("T", ["Timestamp", "Organization", "Event"])
        return first.added, second.added, await schema.get_columns("T")

    first_added, second_added, header = asyncio.run(_run())

    assert first_added == ("Timestamp", "Organization", "Event")
    assert second_added == ()
    assert header == ["Timestamp", "Organization", "Event"]
    assert backend.writes == [("T", "header")]


@pytest.mark.unit
def test_ensure_columns_never_reorders_existing_header() -> None:
    backend = InMemoryTabularBackend()
    backend.seed("T", ["B", "A"])
    schema = SchemaManager(backend=backend)

    result = asyncio.run(schema.ensure_columns("T", ["A", "C", "B"]))

    assert result.added == ("C",)
    assert asyncio.run(schema.get_columns("T")) == ["B", "A", "C"]


@pytest.mark.unit
def test_requested_aliases_collapse_into_first_spelling() -> None:
    backend = InMemoryTabularBackend()
    schema = SchemaManager(backend=backend)

    result = asyncio.run(schema.ensure_columns("T", ["Event Date", "Event_Date", "event-date", " "]))

    assert result.added == ("Event Date",)


@pytest.mark.unit
def test_find_column_is_separator_and_case_insensitive() -> None:
    backend = InMemoryTabularBackend()
    backend.seed("T", ["Timestamp", "Event Date"])
    schema = SchemaManager(backend=backend)

    async def _run() -> list[int | None]:
        return [
            await schema.find_column("T", "Event_Date"),
            await schema.find_column("T", "Event Date"),
            await schema.find_column("T", "event-date"),
            await schema.find_column("T", "Venue"),
        ]

    assert asyncio.run(_run()) == [1, 1, 1, None]


@pytest.mark.unit
def test_concurrent_ensure_columns_add_each_column_once() -> None:
    backend = InMemoryTabularBackend()
    schema = SchemaManager(backend=backend)

    async def _run() -> list[str]:
        await asyncio.gather(*(schema.ensure_columns("T", ["Name", f"Field {i % 3}"]) for i in range(9)))
        return await schema.get_columns("T")

    header = asyncio.run(_run())

    assert sorted(header) == ["Field 0", "Field 1", "Field 2", "Name"]


@pytest.mark.unit
def test_duplicate_normalized_header_reports_conflict_once(caplog: pytest.LogCaptureFixture) -> None:
    backend = InMemoryTabularBackend()
    backend.seed("T", ["Email", "E-mail", "email"])
    schema = SchemaManager(backend=backend)

    with caplog.at_level(logging.WARNING, logger="formstore.tables"):
        first = asyncio.run(schema.find_column("T", "EMAIL"))
        second = asyncio.run(schema.find_column("T", "email"))

    conflicts = [record for record in caplog.records if getattr(record, "error_code", None) == "schema_conflict"]
    assert first == 0
    assert second == 0
    assert [(record.canonical_column, record.alias_column) for record in conflicts] == [("Email", "email")]


@pytest.mark.unit
def test_column_index_first_seen_wins() -> None:
    index = ColumnIndex.build(["Name", "name ", "Notes"])

    assert index.find("NAME") == 0
    assert "notes" in index
    assert "missing" not in index
    assert index.conflicts == (("Name", "name "),)


@pytest.mark.unit
def test_separate_managers_extending_one_table_keep_every_column() -> None:
    backend = InMemoryTabularBackend()
    backend.seed("T", ["Timestamp", "Name"])
    first = SchemaManager(backend=backend)
    second = SchemaManager(backend=backend)

    async def _run() -> tuple[tuple[str, ...], tuple[str, ...]]:
        added_first, added_second = await asyncio.gather(
            first.ensure_columns("T", ["Name", "Venue", "Seats"]),
            second.ensure_columns("T", ["Name", "Catering", "seats"]),
        )
        return added_first.added, added_second.added

    added_first, added_second = asyncio.run(_run())

    header = backend.tables["T"].header
    assert header[:2] == ["Timestamp", "Name"]
    assert len(header) == 5
    assert {name.casefold() for name in header[2:]} == {"venue", "seats", "catering"}
    assert len(added_first) + len(added_second) == 3
