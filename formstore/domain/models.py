from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from formstore.domain.layouts import COMMENTS_COLUMN, CONFIRMATION_COLUMN, STATUS_COLUMN
from formstore.domain.names import normalize_name

# Scalar cell value. Blank cells are stored as "".
Cell = str | int | float | bool | None

BLANK = ""


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def is_structured(value: object) -> bool:
    return isinstance(value, (dict, list, tuple, set, frozenset, bytes, bytearray))


def _as_cell(value: object) -> Cell:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class TableSelector(StrEnum):
    ORDERS = "Orders"
    DOCUMENTS = "Documents"
    FEEDBACK = "Feedback"


@dataclass(frozen=True)
class LegacyId:
    value: int


@dataclass(frozen=True)
class CurrentId:
    value: int


RowKey = LegacyId | CurrentId

# Normalized field names that populate Record's explicit fields.
_CONFIRMATION_ALIASES = frozenset(
    {"confirmation token", "confirmation number", "confirmation", "confirmation id"}
)
_TYPE_ALIASES = frozenset({"type", "submission type", "form type", "formtype", "request type"})
_STATUS_ALIASES = frozenset({normalize_name(STATUS_COLUMN)})
_COMMENTS_ALIASES = frozenset({normalize_name(COMMENTS_COLUMN), "comment", "notes"})


@dataclass(frozen=True)
class Record:
    """A submission normalized out of a free-form field map.

    Known workflow fields are lifted into attributes; everything else stays in
    ``extra`` in caller order and becomes dynamic columns.
    """

    confirmation_token: str | None = None
    submission_type: str | None = None
    status: str | None = None
    comments: str | None = None
    extra: dict[str, Cell] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> Record:
        confirmation_token: str | None = None
        submission_type: str | None = None
        status: str | None = None
        comments: str | None = None
        extra: dict[str, Cell] = {}
        for raw_name, value in values.items():
            name = str(raw_name).strip()
            if not name:
                continue
            key = normalize_name(name)
            if key in _CONFIRMATION_ALIASES and confirmation_token is None and not is_blank(value):
                confirmation_token = str(value).strip()
            elif key in _TYPE_ALIASES and submission_type is None and not is_blank(value):
                submission_type = str(value).strip()
            elif key in _STATUS_ALIASES and status is None and not is_blank(value):
                status = str(value)
            elif key in _COMMENTS_ALIASES and comments is None and not is_blank(value):
                comments = str(value)
            elif is_structured(value):
                # Nested payloads (file blobs, sub-forms) never become cells.
                continue
            else:
                extra[name] = _as_cell(value)
        return cls(
            confirmation_token=confirmation_token,
            submission_type=submission_type,
            status=status,
            comments=comments,
            extra=extra,
        )

    def columns(self) -> Iterator[tuple[str, Cell]]:
        for name, value in self.extra.items():
            if is_blank(value) or is_structured(value):
                continue
            yield name, value.strip() if isinstance(value, str) else value
        if self.status is not None and not is_blank(self.status):
            yield STATUS_COLUMN, self.status
        if self.comments is not None and not is_blank(self.comments):
            yield COMMENTS_COLUMN, self.comments
        if self.confirmation_token is not None and not is_blank(self.confirmation_token):
            yield CONFIRMATION_COLUMN, self.confirmation_token


@dataclass(frozen=True)
class EnsureColumnsResult:
    table: str
    added: tuple[str, ...]


@dataclass(frozen=True)
class AppendResult:
    table: str
    row_position: int


@dataclass(frozen=True)
class AssignResult:
    table: str
    row_position: int
    assigned: dict[str, Cell]
    newly_assigned: tuple[str, ...] = ()


@dataclass(frozen=True)
class BackfillResult:
    table: str
    rows_updated: int
    rows_missing: int = 0
    failed_rows: tuple[int, ...] = ()
