from __future__ import annotations


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class UnknownTableError(DomainValidationError):
    pass


class StorageWriteError(DomainDependencyError):
    pass


# Reads share the write failure code: either way the store could not be used.
class StorageReadError(StorageWriteError):
    pass


class CounterStoreUnavailableError(DomainDependencyError):
    pass


class RowNotFoundError(DomainError):
    def __init__(self, *, table: str, row_id: object) -> None:
        super().__init__(f"row not found: table={table} id={row_id}")
        self.table = table
        self.row_id = row_id
