from __future__ import annotations

from formstore.api.handlers.deps import ApiDeps, table_name
from formstore.api.schemas import TableColumnsResponse

COMPONENT_ID = "api.get_table_columns"


async def get_table_columns_handler(*, table: str, api_deps: ApiDeps) -> TableColumnsResponse:
    name = table_name(table)
    return TableColumnsResponse(table=name, columns=await api_deps.store.schema.get_columns(name))
