"""In-memory stand-ins for the Airtable base and the Bill.com API."""
from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

from billsync.integrations.airtable import AirtableRecord


class FakeBase:
    """
    Holds tables as {table: {record_id: fields}} and applies writes to them,
    so a second run sees what the first one wrote.
    """

    def __init__(self, tables: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None, views=None, events=None):
        self.tables = {name: dict(rows) for name, rows in (tables or {}).items()}
        # {(table, view): [record ids]}; a missing view means the whole table
        self.views = views or {}
        self.events = events if events is not None else []
        self.updates: List[tuple] = []
        self.creates: List[tuple] = []
        self._ids = itertools.count(1)

    def _records(self, table: str, view: str) -> List[AirtableRecord]:
        rows = self.tables.get(table, {})
        ids = self.views.get((table, view), list(rows))
        return [AirtableRecord(id=rid, fields=dict(rows[rid])) for rid in ids]

    async def select_all(self, table, view=""):
        return self._records(table, view)

    async def select(self, table, view, func):
        results = []
        for record in self._records(table, view):
            result = func(record)
            if hasattr(result, "__await__"):
                result = await result
            results.append(result)
        return results

    async def find(self, table, record_id, func):
        result = func(AirtableRecord(id=record_id, fields=dict(self.tables[table][record_id])))
        if hasattr(result, "__await__"):
            result = await result
        return result

    async def find_record(self, table, record_id):
        return await self.find(table, record_id, lambda record: record)

    async def update(self, table, updates):
        self.updates.append((table, updates))
        self.events.append(("airtable.update", table, [u["id"] for u in updates]))
        for update in updates:
            self.tables[table][update["id"]].update(update["fields"])
        return updates

    async def create(self, table, creates):
        self.creates.append((table, creates))
        self.events.append(("airtable.create", table, len(creates)))
        rows = self.tables.setdefault(table, {})
        for create in creates:
            rows[f"recNEW{next(self._ids):07d}"] = dict(create["fields"])
        return creates

    async def select_and_update(self, table, view, fields_func):
        async def _apply(record):
            fields = await fields_func(record)
            if fields is None:
                return None
            return await self.update(table, [{"id": record.id, "fields": fields}])

        return await self.select(table, view, _apply)


class FakeApi:
    """Answers like a logged in Bill.com org and records every write."""

    def __init__(self, entities: Optional[Dict[str, List[Dict[str, Any]]]] = None, pages=None, events=None):
        self.entities = entities or {}
        self.pages = pages or {}
        self.events = events if events is not None else []
        self.session_id = "sess-1"
        self.logged_in = False
        self.created: List[tuple] = []
        self.data_calls: List[tuple] = []
        self.uploads: List[tuple] = []
        self._ids = itertools.count(1)

    async def primary_org_login(self):
        self.logged_in = True
        return self.session_id

    def get_session_id(self):
        return self.session_id

    def get_dev_key(self):
        return "dev-key"

    async def list_active(self, entity):
        return [dict(e) for e in self.entities.get(entity, [])]

    async def data_call(self, endpoint, data):
        self.data_calls.append((endpoint, data))
        self.events.append(("bill_com.data_call", endpoint))
        if endpoint == "GetDocumentPages":
            return {"documentPages": {"numPages": self.pages.get(data["id"], 0)}}
        return {}

    async def create(self, entity, data):
        new_id = f"{entity[:3].lower()}{next(self._ids):05d}"
        self.created.append((entity, data, new_id))
        self.events.append(("bill_com.create", entity))
        return new_id

    async def upload_attachment(self, bill_id, filename, content, content_type="application/octet-stream"):
        self.uploads.append((bill_id, filename, content))
        self.events.append(("bill_com.upload", filename))
        return {}

    def document_page_url(self, entity_id, page_number):
        return (
            f"https://api.bill.com/is/BillImageServlet?entityId={entity_id}"
            f"&sessionId={self.session_id}&pageNumber={page_number}"
        )
