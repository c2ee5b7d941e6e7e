"""Tests for the Airtable and Baserow record store adapters against httpx.MockTransport."""

import json

import httpx
import pytest

from booking_api.domain.scheduling.repository import ACTIVE_BOOKINGS
from booking_api.errors import AmbiguousWrite, UpstreamUnavailable
from booking_api.services.airtable_service import AirtableService, build_formula, formula_literal
from booking_api.services.baserow_service import BaserowService, build_filter_params
from booking_api.services.record_store import RecordFilter


class TestAirtableFormula:
    def test_literal_escapes_quotes(self):
        assert formula_literal("O'Brien") == "'O\\'Brien'"

    def test_literal_numbers_unquoted(self):
        assert formula_literal(20) == "20"

    def test_single_condition(self):
        assert build_formula(ACTIVE_BOOKINGS) == "{Status} != 'cancelled'"

    def test_conditions_are_and_combined(self):
        record_filter = RecordFilter(equals={"IdempotencyKey": "k1"}, not_equals={"Status": "cancelled"})
        assert build_formula(record_filter) == "AND({IdempotencyKey} = 'k1', {Status} != 'cancelled')"

    def test_empty_filter(self):
        assert build_formula(RecordFilter()) is None


class TestAirtableService:
    async def test_list_follows_offset_pagination(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if "offset" not in request.url.params:
                return httpx.Response(
                    200,
                    json={"records": [{"id": "rec1", "fields": {"Status": "confirmed"}}], "offset": "itr1"},
                )
            return httpx.Response(200, json={"records": [{"id": "rec2", "fields": {}}]})

        service = AirtableService("key123", "appBase", transport=httpx.MockTransport(handler))

        records = await service.list_records("Bookings", ACTIVE_BOOKINGS)

        assert [r.id for r in records] == ["rec1", "rec2"]
        assert records[0].fields == {"Status": "confirmed"}
        assert seen[0].url.host == "api.airtable.com"
        assert seen[0].url.path == "/v0/appBase/Bookings"
        assert seen[0].headers["Authorization"] == "Bearer key123"
        assert seen[0].url.params["filterByFormula"] == "{Status} != 'cancelled'"
        assert seen[1].url.params["offset"] == "itr1"

    async def test_find_by_field(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["filterByFormula"] == "{IdempotencyKey} = 'abc'"
            return httpx.Response(200, json={"records": [{"id": "rec9", "fields": {}}]})

        service = AirtableService("key", "app", transport=httpx.MockTransport(handler))

        records = await service.find_by_field("Bookings", "IdempotencyKey", "abc")

        assert [r.id for r in records] == ["rec9"]

    async def test_create_sends_fields_with_typecast(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "recNew", "fields": bodies[-1]["fields"]})

        service = AirtableService("key", "app", transport=httpx.MockTransport(handler))

        record = await service.create_record("Bookings", {"Name": "Ada"})

        assert record.id == "recNew"
        assert bodies == [{"fields": {"Name": "Ada"}, "typecast": True}]

    async def test_error_status_is_unavailable(self):
        service = AirtableService(
            "key", "app", transport=httpx.MockTransport(lambda r: httpx.Response(422, json={}))
        )

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await service.list_records("Bookings")
        assert exc_info.value.upstream_status == 422

    async def test_read_timeout_is_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        service = AirtableService("key", "app", transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await service.list_records("Bookings")
        assert not isinstance(exc_info.value, AmbiguousWrite)

    async def test_write_timeout_is_ambiguous(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        service = AirtableService("key", "app", transport=httpx.MockTransport(handler))

        with pytest.raises(AmbiguousWrite):
            await service.create_record("Bookings", {"Name": "Ada"})

    async def test_connect_failure_on_write_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        service = AirtableService("key", "app", transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamUnavailable):
            await service.create_record("Bookings", {"Name": "Ada"})


class TestBaserowService:
    def test_filter_params(self):
        params = build_filter_params(ACTIVE_BOOKINGS)
        assert params == {"filter__Status__not_equal": "cancelled", "filter_type": "AND"}

    async def test_list_follows_next_pagination(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.params["page"] == "1":
                return httpx.Response(
                    200,
                    json={
                        "count": 2,
                        "next": "https://api.baserow.io/api/database/rows/table/42/?page=2",
                        "results": [{"id": 1, "order": "1.0", "Date": "2025-12-24"}],
                    },
                )
            return httpx.Response(
                200, json={"count": 2, "next": None, "results": [{"id": 2, "order": "2.0", "Date": "2025-12-31"}]}
            )

        service = BaserowService("tok", transport=httpx.MockTransport(handler))

        records = await service.list_records("42", ACTIVE_BOOKINGS)

        assert [r.id for r in records] == ["1", "2"]
        assert records[0].fields == {"Date": "2025-12-24"}
        assert seen[0].url.path == "/api/database/rows/table/42/"
        assert seen[0].headers["Authorization"] == "Token tok"
        assert seen[0].url.params["user_field_names"] == "true"
        assert seen[0].url.params["filter__Status__not_equal"] == "cancelled"
        assert len(seen) == 2

    async def test_create_row(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.params["user_field_names"] == "true"
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": 7, "order": "7.0", **body})

        service = BaserowService(
            "tok", api_url="https://baserow.example.com/", transport=httpx.MockTransport(handler)
        )

        record = await service.create_record("42", {"Name": "Ada", "Status": "confirmed"})

        assert record.id == "7"
        assert record.fields == {"Name": "Ada", "Status": "confirmed"}

    async def test_non_json_response_is_unavailable(self):
        service = BaserowService(
            "tok", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
        )

        with pytest.raises(UpstreamUnavailable):
            await service.list_records("42")
