from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from formstore.domain.names import normalize_name

normalize_column_name = normalize_name


@dataclass(frozen=True)
class ColumnIndex:
    """Normalized-name lookup over a header row.

    The first column whose name normalizes to a key owns that key; later
    columns with the same key are recorded in ``conflicts`` and are never
    returned by ``find``.
    """

    header: tuple[str, ...]
    positions: dict[str, int] = field(default_factory=dict)
    conflicts: tuple[tuple[str, str], ...] = ()

    @classmethod
    def build(cls, header: Sequence[str]) -> ColumnIndex:
        positions: dict[str, int] = {}
        conflicts: list[tuple[str, str]] = []
        for index, name in enumerate(header):
            key = normalize_column_name(str(name))
            if not key:
                continue
            if key in positions:
                conflicts.append((header[positions[key]], str(name)))
                continue
            positions[key] = index
        return cls(header=tuple(header), positions=positions, conflicts=tuple(conflicts))

    def find(self, name: str) -> int | None:
        return self.positions.get(normalize_column_name(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None
