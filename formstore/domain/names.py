from __future__ import annotations

from collections.abc import Iterable
import re

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_name(name: str) -> str:
    """Lookup key for a column or field name.

    Case, spaces, underscores and hyphens are not significant:
    "Event_Date", "Event Date" and "event-date" all give "event date".
    """
    return _SEPARATORS.sub(" ", name.strip().casefold()).strip()


def absent_names(existing: Iterable[str], requested: Iterable[str]) -> list[str]:
    """Requested names whose lookup key is neither existing nor blank, first spelling kept."""
    seen = {normalize_name(str(name)) for name in existing}
    absent: list[str] = []
    for raw in requested:
        name = str(raw).strip()
        key = normalize_name(name)
        if not key or key in seen:
            continue
        seen.add(key)
        absent.append(name)
    return absent
