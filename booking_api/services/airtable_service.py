import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .record_store import RecordFilter, RecordStore, StoreRecord

logger = logging.getLogger(__name__)


def formula_literal(value: Any) -> str:
    """Render value as an Airtable formula literal"""
    if isinstance(value, bool):
        return "TRUE()" if value else "FALSE()"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_formula(record_filter: RecordFilter) -> Optional[str]:
    """Translate a RecordFilter into a filterByFormula expression"""
    conditions = [f"{{{k}}} = {formula_literal(v)}" for k, v in record_filter.equals.items()]
    conditions += [f"{{{k}}} != {formula_literal(v)}" for k, v in record_filter.not_equals.items()]
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return f"AND({', '.join(conditions)})"


class AirtableService(RecordStore):
    """Record store backed by the Airtable REST API (v0)"""

    name = "airtable"
    BASE_URL = "https://api.airtable.com/v0"
    PAGE_SIZE = 100

    def __init__(
        self,
        api_key: str,
        base_id: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, transport=transport)
        self.api_key = api_key
        self.base_id = base_id

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    def _table_url(self, table: str) -> str:
        return f"{self.BASE_URL}/{self.base_id}/{quote(table, safe='')}"

    @staticmethod
    def _to_record(raw: dict) -> StoreRecord:
        return StoreRecord(id=str(raw.get("id")), fields=raw.get("fields") or {})

    async def _list(self, table: str, formula: Optional[str], operation: str) -> list[StoreRecord]:
        records: list[StoreRecord] = []
        params: dict[str, Any] = {"pageSize": self.PAGE_SIZE}
        if formula:
            params["filterByFormula"] = formula

        async with self._client(headers=self._headers()) as client:
            while True:
                data = await self._send(
                    client, "GET", self._table_url(table), operation, params=params
                )
                records.extend(self._to_record(r) for r in data.get("records", []))
                offset = data.get("offset")
                if not offset:
                    break
                params["offset"] = offset

        logger.debug(f"📋 Airtable {operation}: {len(records)} records from {table}")
        return records

    async def list_records(
        self, table: str, record_filter: Optional[RecordFilter] = None
    ) -> list[StoreRecord]:
        formula = build_formula(record_filter) if record_filter else None
        return await self._list(table, formula, f"list {table}")

    async def find_by_field(self, table: str, field_name: str, value: Any) -> list[StoreRecord]:
        formula = f"{{{field_name}}} = {formula_literal(value)}"
        return await self._list(table, formula, f"find {table}.{field_name}")

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        async with self._client(headers=self._headers()) as client:
            data = await self._send(
                client,
                "POST",
                self._table_url(table),
                f"create {table}",
                is_write=True,
                json={"fields": fields, "typecast": True},
            )
        record = self._to_record(data)
        logger.info(f"✅ Airtable record created in {table}: {record.id}")
        return record
