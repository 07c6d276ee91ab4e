from __future__ import annotations

from collections.abc import Iterable

from formstore.domain.errors import UnknownTableError
from formstore.domain.models import TableSelector
from formstore.domain.names import normalize_name

DECLARED_TYPE_SYNONYMS: dict[str, TableSelector] = {
    "order": TableSelector.ORDERS,
    "orders": TableSelector.ORDERS,
    "purchase": TableSelector.ORDERS,
    "purchase order": TableSelector.ORDERS,
    "request": TableSelector.ORDERS,
    "document": TableSelector.DOCUMENTS,
    "documents": TableSelector.DOCUMENTS,
    "upload": TableSelector.DOCUMENTS,
    "document upload": TableSelector.DOCUMENTS,
    "file": TableSelector.DOCUMENTS,
    "feedback": TableSelector.FEEDBACK,
    "survey": TableSelector.FEEDBACK,
    "review": TableSelector.FEEDBACK,
}

# Substrings of normalized field names that identify a category when the
# caller did not declare one. Checked in order; first hit wins.
FIELD_HINTS: tuple[tuple[str, TableSelector], ...] = (
    ("file", TableSelector.DOCUMENTS),
    ("upload", TableSelector.DOCUMENTS),
    ("document", TableSelector.DOCUMENTS),
    ("rating", TableSelector.FEEDBACK),
    ("feedback", TableSelector.FEEDBACK),
)


def resolve_table(*, declared_type: str | None, field_names: Iterable[str]) -> TableSelector:
    if declared_type is not None and declared_type.strip():
        selector = DECLARED_TYPE_SYNONYMS.get(normalize_name(declared_type))
        if selector is None:
            raise UnknownTableError(f"unsupported submission type: {declared_type}")
        return selector

    normalized = [normalize_name(name) for name in field_names]
    for hint, selector in FIELD_HINTS:
        if any(hint in name for name in normalized):
            return selector
    return TableSelector.ORDERS


def parse_table_selector(raw: str) -> TableSelector:
    key = normalize_name(raw)
    for selector in TableSelector:
        if normalize_name(selector.value) == key:
            return selector
    selector = DECLARED_TYPE_SYNONYMS.get(key)
    if selector is None:
        raise UnknownTableError(f"unknown table: {raw}")
    return selector
