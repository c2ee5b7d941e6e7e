import logging
from typing import Any, Optional

import httpx

from .record_store import RecordFilter, RecordStore, StoreRecord

logger = logging.getLogger(__name__)

# Row metadata Baserow returns next to the user fields
ROW_META_FIELDS = ("id", "order")


def build_filter_params(record_filter: RecordFilter) -> dict[str, str]:
    params = {f"filter__{k}__equal": str(v) for k, v in record_filter.equals.items()}
    params.update(
        {f"filter__{k}__not_equal": str(v) for k, v in record_filter.not_equals.items()}
    )
    if params:
        params["filter_type"] = "AND"
    return params


class BaserowService(RecordStore):
    """
    Record store backed by the Baserow REST API.

    Tables are addressed by numeric table id; rows are read and written with
    user_field_names=true so field names match the Airtable layout.
    """

    name = "baserow"
    PAGE_SIZE = 200

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.baserow.io",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, transport=transport)
        self.token = token
        self.api_url = api_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self.token}", "Content-Type": "application/json"}

    def _table_url(self, table: str) -> str:
        return f"{self.api_url}/api/database/rows/table/{table}/"

    @staticmethod
    def _to_record(row: dict) -> StoreRecord:
        fields = {k: v for k, v in row.items() if k not in ROW_META_FIELDS}
        return StoreRecord(id=str(row.get("id")), fields=fields)

    async def _list(self, table: str, filters: dict[str, str], operation: str) -> list[StoreRecord]:
        records: list[StoreRecord] = []
        page = 1

        async with self._client(headers=self._headers()) as client:
            while True:
                params = {"user_field_names": "true", "size": self.PAGE_SIZE, "page": page, **filters}
                data = await self._send(
                    client, "GET", self._table_url(table), operation, params=params
                )
                records.extend(self._to_record(r) for r in data.get("results", []))
                if not data.get("next"):
                    break
                page += 1

        logger.debug(f"📋 Baserow {operation}: {len(records)} rows from table {table}")
        return records

    async def list_records(
        self, table: str, record_filter: Optional[RecordFilter] = None
    ) -> list[StoreRecord]:
        filters = build_filter_params(record_filter) if record_filter else {}
        return await self._list(table, filters, f"list {table}")

    async def find_by_field(self, table: str, field_name: str, value: Any) -> list[StoreRecord]:
        filters = build_filter_params(RecordFilter(equals={field_name: value}))
        return await self._list(table, filters, f"find {table}.{field_name}")

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        async with self._client(headers=self._headers()) as client:
            data = await self._send(
                client,
                "POST",
                self._table_url(table),
                f"create {table}",
                is_write=True,
                params={"user_field_names": "true"},
                json=fields,
            )
        record = self._to_record(data)
        logger.info(f"✅ Baserow row created in table {table}: {record.id}")
        return record
