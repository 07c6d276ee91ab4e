import asyncio

import pytest

from formstore.domain.errors import RowNotFoundError, StorageWriteError
from formstore.domain.models import CurrentId, LegacyId
from formstore.lib.tables.locator import RowLocator, loosely_equal
from formstore.lib.tables.schema import SchemaManager
from formstore.repositories.stub import InMemoryTabularBackend

ORDERS_HEADER = ["Timestamp", "Name", "Historical ID", "Submission ID", "Semester"]


def _locator() -> tuple[RowLocator, InMemoryTabularBackend]:
    backend = InMemoryTabularBackend()
    backend.seed(
        "Orders",
        ORDERS_HEADER,
        [
            ["t1", "first", 7, "", ""],
            ["t2", "second", "", "7.0", ""],
            ["t3", "third", "12", "3", ""],
            ["t4", "fourth", "12", "", ""],
        ],
    )
    return RowLocator(schema=SchemaManager(backend=backend), backend=backend), backend


@pytest.mark.unit
@pytest.mark.parametrize(
    ("cell", "wanted", "expected"),
    [
        (7, "7", True),
        ("7", 7, True),
        (7.0, "7", True),
        ("007", 7, True),
        (" abc ", "abc", True),
        ("abc", "ABC", False),
        ("", "", False),
        (None, "7", False),
        ("7", "8", False),
    ],
)
def test_loose_equality(cell: object, wanted: object, expected: bool) -> None:
    assert loosely_equal(cell, wanted) is expected


@pytest.mark.unit
def test_string_id_matches_numeric_legacy_cell() -> None:
    locator, _backend = _locator()

    assert asyncio.run(locator.find_row("Orders", "7")) == 1
    assert asyncio.run(locator.find_row("Orders", 7)) == 1


@pytest.mark.unit
def test_first_match_wins_for_duplicate_ids() -> None:
    locator, _backend = _locator()

    assert asyncio.run(locator.find_row("Orders", "12")) == 3


@pytest.mark.unit
def test_row_key_restricts_match_to_one_column() -> None:
    locator, _backend = _locator()

    async def _run() -> list[int | None]:
        return [
            await locator.find_row("Orders", CurrentId(7)),
            await locator.find_row("Orders", LegacyId(7)),
            await locator.find_row("Orders", LegacyId(3)),
            await locator.find_row("Orders", CurrentId(3)),
        ]

    assert asyncio.run(_run()) == [2, 1, None, 3]


@pytest.mark.unit
def test_unknown_id_is_row_not_found() -> None:
    locator, _backend = _locator()

    assert asyncio.run(locator.find_row("Orders", "99")) is None
    assert asyncio.run(locator.find_row("Orders", "")) is None
    with pytest.raises(RowNotFoundError):
        asyncio.run(locator.require_row("Orders", "99"))


@pytest.mark.unit
def test_table_without_identifier_columns_never_matches() -> None:
    locator, backend = _locator()
    backend.seed("T", ["Timestamp", "Organization"], [["t", "7"]])

    assert asyncio.run(locator.find_row("T", "7")) is None


@pytest.mark.unit
def test_update_cells_creates_missing_columns_and_overwrites() -> None:
    locator, backend = _locator()

    async def _run() -> dict[str, int]:
        await locator.update_cells("Orders", 2, {"Name": "renamed"})
        return await locator.update_cells("Orders", 2, {"name": "again", "Notes": "late"})

    written = asyncio.run(_run())

    assert written == {"Name": 1, "Notes": 5}
    assert backend.tables["Orders"].header[-1] == "Notes"
    assert backend.tables["Orders"].rows[1] == ["t2", "again", "", "7.0", "", "late"]
    assert backend.tables["Orders"].rows[0] == ["t1", "first", 7, "", ""]


@pytest.mark.unit
def test_update_cells_on_missing_row_raises() -> None:
    locator, _backend = _locator()

    with pytest.raises(RowNotFoundError):
        asyncio.run(locator.update_cells("Orders", 9, {"Name": "x"}))


@pytest.mark.unit
def test_update_cells_surfaces_write_failures() -> None:
    locator, backend = _locator()
    backend.fail_writes = True

    with pytest.raises(StorageWriteError):
        asyncio.run(locator.update_cells("Orders", 1, {"Name": "x"}))


@pytest.mark.unit
def test_read_row_pads_short_rows() -> None:
    locator, backend = _locator()
    backend.tables["Orders"].rows[0] = ["t1", "first"]

    row = asyncio.run(locator.read_row("Orders", 1))

    assert row == {"Timestamp": "t1", "Name": "first", "Historical ID": "", "Submission ID": "", "Semester": ""}
