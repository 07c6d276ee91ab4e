from __future__ import annotations

from dataclasses import dataclass

ROLE_DESCRIPTIONS = {
    "api": "submission intake, edits and on-demand identifier repair over HTTP",
    "worker-backfill": "the HTTP surface plus a periodic identifier backfill",
}

SUPPORTED_ROLES = tuple(ROLE_DESCRIPTIONS)


@dataclass(frozen=True)
class RuntimeRole:
    name: str

    @property
    def runs_backfill(self) -> bool:
        return self.name == "worker-backfill"

    @property
    def description(self) -> str:
        return ROLE_DESCRIPTIONS[self.name]


def validate_role(role: str) -> RuntimeRole:
    if role in ROLE_DESCRIPTIONS:
        return RuntimeRole(name=role)

    supported = ", ".join(SUPPORTED_ROLES)
    raise ValueError(
        f"Unsupported role '{role}'. Supported roles: {supported}. "
        "Schema migrations in db/migrations are applied outside the app."
    )
