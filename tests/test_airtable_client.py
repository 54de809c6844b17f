"""
Tests for the Airtable client, run against httpx.MockTransport.
"""
import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from billsync.core.config import Settings
from billsync.integrations.airtable import AirtableRecord, Base
from billsync.models.airtable import CheckRequestLineItem
from billsync.services.errors import AirtableError, ConfigError, RecordValidationError

SETTINGS = Settings(airtable_api_key="key-test", airtable_base_id="appTEST")


def _base(handler) -> Base:
    client = httpx.AsyncClient(
        base_url="https://api.airtable.com/v0",
        transport=httpx.MockTransport(handler),
    )
    return Base(settings=SETTINGS, client=client)


def _echo_records(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"records": body["records"]})


class TestWrites:

    def test_updates_are_sent_in_batches_of_ten(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _echo_records(request)

        updates = [{"id": f"rec{i:011d}", "fields": {"Active": True}} for i in range(25)]
        written = asyncio.run(_base(handler).update("Bill Reporting", updates))

        assert [len(json.loads(c.content)["records"]) for c in calls] == [10, 10, 5]
        assert all(c.method == "PATCH" for c in calls)
        assert calls[0].url.path == "/v0/appTEST/Bill Reporting"
        assert calls[0].headers["Authorization"] == "Bearer key-test"
        assert [r["id"] for r in written] == [u["id"] for u in updates]

    def test_batches_go_out_in_order(self):
        seen = []

        def handler(request):
            seen.extend(r["fields"]["n"] for r in json.loads(request.content)["records"])
            return _echo_records(request)

        creates = [{"fields": {"n": i}} for i in range(12)]
        asyncio.run(_base(handler).create("Bill Reporting", creates))

        assert seen == list(range(12))

    def test_create_posts_records(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _echo_records(request)

        asyncio.run(_base(handler).create("Bill Reporting", [{"fields": {"Active": True}}]))

        (call,) = calls
        assert call.method == "POST"
        assert json.loads(call.content) == {"records": [{"fields": {"Active": True}}]}

    def test_empty_write_makes_no_call(self):
        def handler(request):
            raise AssertionError("unexpected request")

        assert asyncio.run(_base(handler).update("Bill Reporting", [])) == []

    def test_failed_write_names_operation_and_table(self):
        def handler(request):
            return httpx.Response(
                422,
                json={"error": {"type": "INVALID_VALUE_FOR_COLUMN", "message": "Bad Amount"}},
            )

        with pytest.raises(AirtableError) as exc_info:
            asyncio.run(_base(handler).update("Bill Reporting", [{"id": "recA", "fields": {}}]))

        message = str(exc_info.value)
        assert message.startswith("Error updating records in Airtable Table Bill Reporting")
        assert "INVALID_VALUE_FOR_COLUMN" in message
        assert exc_info.value.table == "Bill Reporting"


class TestReads:

    def test_select_follows_offsets(self):
        pages = {
            None: {"records": [{"id": "rec1", "fields": {"n": 1}}], "offset": "itrNEXT"},
            "itrNEXT": {"records": [{"id": "rec2", "fields": {"n": 2}}]},
        }
        offsets = []

        def handler(request):
            offset = request.url.params.get("offset")
            offsets.append(offset)
            return httpx.Response(200, json=pages[offset])

        records = asyncio.run(_base(handler).select_all("Check Requests", "New"))

        assert [r.id for r in records] == ["rec1", "rec2"]
        assert offsets == [None, "itrNEXT"]

    def test_view_is_sent_when_given(self):
        views = []

        def handler(request):
            views.append(request.url.params.get("view"))
            return httpx.Response(200, json={"records": []})

        async def run():
            base = _base(handler)
            await base.select_all("Check Requests", "New")
            await base.select_all("Bill Reporting", "")

        asyncio.run(run())

        assert views == ["New", None]

    def test_select_runs_func_per_record(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"records": [{"id": "rec1", "fields": {"n": 1}}, {"id": "rec2", "fields": {"n": 2}}]},
            )

        async def double(record):
            return record.get("n") * 2

        assert asyncio.run(_base(handler).select("T", "", double)) == [2, 4]
        assert asyncio.run(_base(handler).select("T", "", lambda r: r.id)) == ["rec1", "rec2"]

    def test_find_fetches_one_record(self):
        def handler(request):
            assert request.url.path == "/v0/appTEST/Users/recUS0000001"
            return httpx.Response(200, json={"id": "recUS0000001", "fields": {"MSO Bill.com ID": "006u1"}})

        record = asyncio.run(_base(handler).find_record("Users", "recUS0000001"))

        assert record.get("MSO Bill.com ID") == "006u1"

    def test_failed_find(self):
        def handler(request):
            return httpx.Response(404, json={"error": "NOT_FOUND"})

        with pytest.raises(AirtableError, match="Error finding records in Airtable Table Users: 404 NOT_FOUND"):
            asyncio.run(_base(handler).find_record("Users", "recMISSING000"))

    def test_transport_failure_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AirtableError, match="Error selecting records in Airtable Table Users"):
            asyncio.run(_base(handler).select_all("Users"))

    def test_callback_errors_are_not_wrapped(self):
        def handler(request):
            return httpx.Response(200, json={"records": [{"id": "rec1", "fields": {}}]})

        def boom(record):
            raise KeyError("Amount")

        with pytest.raises(KeyError):
            asyncio.run(_base(handler).select("T", "", boom))


class TestSelectAndUpdate:

    def test_none_result_leaves_record_alone(self):
        patched = []

        def handler(request):
            if request.method == "PATCH":
                patched.extend(r["id"] for r in json.loads(request.content)["records"])
                return _echo_records(request)
            return httpx.Response(
                200,
                json={"records": [{"id": "rec1", "fields": {}}, {"id": "rec2", "fields": {"Done": True}}]},
            )

        async def fields_for(record):
            if record.get("Done"):
                return None
            return {"Done": True}

        asyncio.run(_base(handler).select_and_update("Check Requests", "New", fields_for))

        assert patched == ["rec1"]


class TestRecords:

    def test_parse_valid_row(self):
        record = AirtableRecord(
            id="recLI0000001",
            fields={"Amount": 3, "Project": ["recIC0000001"], "Merchant Zip Code": 2139.0},
        )

        item = record.parse(CheckRequestLineItem, "Check Request Line Items")

        assert item.amount == 3
        assert item.category is None
        assert item.merchant_zip_code == "2139"

    def test_parse_missing_required_field(self):
        record = AirtableRecord(id="recLI0000001", fields={"Amount": 3})

        with pytest.raises(RecordValidationError) as exc_info:
            record.parse(CheckRequestLineItem, "Check Request Line Items")

        assert exc_info.value.context == {"table": "Check Request Line Items", "record_id": "recLI0000001"}

    def test_missing_credentials(self):
        with pytest.raises(ConfigError):
            Base(settings=Settings(airtable_base_id="appTEST"))
