from __future__ import annotations

import re
from enum import StrEnum


class CanonicalStatus(StrEnum):
    NEW = "new"
    ORDERED = "ordered"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    AWAITING_RESPONSE = "awaiting_response"
    CANCELLED = "cancelled"


DISPLAY_STRINGS: dict[CanonicalStatus, str] = {
    CanonicalStatus.NEW: "New",
    CanonicalStatus.ORDERED: "Ordered",
    CanonicalStatus.DELIVERED: "Delivered",
    CanonicalStatus.COMPLETED: "Completed",
    CanonicalStatus.AWAITING_RESPONSE: "Awaiting Response",
    CanonicalStatus.CANCELLED: "Cancelled",
}

# Keys are in lookup form (see _lookup_key). Display strings and enum values
# are added below so every canonical spelling maps to itself.
STATUS_SYNONYMS: dict[str, CanonicalStatus] = {
    "pending": CanonicalStatus.NEW,
    "submitted": CanonicalStatus.NEW,
    "open": CanonicalStatus.NEW,
    "processing": CanonicalStatus.ORDERED,
    "in progress": CanonicalStatus.ORDERED,
    "placed": CanonicalStatus.ORDERED,
    "received": CanonicalStatus.DELIVERED,
    "shipped": CanonicalStatus.DELIVERED,
    "complete": CanonicalStatus.COMPLETED,
    "done": CanonicalStatus.COMPLETED,
    "closed": CanonicalStatus.COMPLETED,
    "resolved": CanonicalStatus.COMPLETED,
    "awaiting reply": CanonicalStatus.AWAITING_RESPONSE,
    "waiting for response": CanonicalStatus.AWAITING_RESPONSE,
    "waiting": CanonicalStatus.AWAITING_RESPONSE,
    "on hold": CanonicalStatus.AWAITING_RESPONSE,
    "canceled": CanonicalStatus.CANCELLED,
    "rejected": CanonicalStatus.CANCELLED,
    "void": CanonicalStatus.CANCELLED,
}

_SEPARATORS = re.compile(r"[\s_\-]+")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def _lookup_key(value: str) -> str:
    return _SEPARATORS.sub(" ", value.strip().lower()).strip()


for _status, _display in DISPLAY_STRINGS.items():
    STATUS_SYNONYMS[_lookup_key(_display)] = _status
    STATUS_SYNONYMS[_lookup_key(_status.value)] = _status


def slugify_status(value: str) -> str:
    return _NON_SLUG.sub("_", value.strip().lower()).strip("_")


def normalize_status(raw: object) -> CanonicalStatus | str:
    """Map a free-form status to its canonical form.

    Blank or absent input is NEW. Unknown input is passed through as a slug,
    so callers never get an error from this function.
    """
    if raw is None:
        return CanonicalStatus.NEW
    text = str(raw)
    key = _lookup_key(text)
    if not key:
        return CanonicalStatus.NEW
    known = STATUS_SYNONYMS.get(key)
    if known is not None:
        return known
    slug = slugify_status(text)
    return slug or CanonicalStatus.NEW


def to_display_string(status: CanonicalStatus | str) -> str:
    if isinstance(status, CanonicalStatus):
        return DISPLAY_STRINGS[status]
    known = STATUS_SYNONYMS.get(_lookup_key(status))
    if known is not None:
        return DISPLAY_STRINGS[known]
    return " ".join(part.capitalize() for part in slugify_status(status).split("_") if part)
