"""
Airtable client for billsync.

A thin async wrapper over the Airtable REST API that the sync jobs use as
their record store:
- select / select_all: page through a table view
- update / create: write records in batches of 10 (the API maximum)
- find: fetch a single record
- select_and_update: write back a per-record computed field set

Every Airtable failure is raised as AirtableError naming the operation and
the table.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from billsync.core.config import Settings, get_settings
from billsync.core.utils import batch_async
from billsync.services.errors import AirtableError, RecordValidationError

logger = logging.getLogger(__name__)

# Max records per create/update call.
MAX_RECORDS_PER_CALL = 10

M = TypeVar("M", bound=BaseModel)


@dataclass
class AirtableRecord:
    """A row as returned by Airtable."""
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    created_time: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "AirtableRecord":
        return cls(
            id=payload["id"],
            fields=payload.get("fields") or {},
            created_time=payload.get("createdTime"),
        )

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def parse(self, model: Type[M], table: str) -> M:
        """Validate this row against a typed schema."""
        try:
            return model.model_validate({**self.fields, "id": self.id})
        except ValidationError as exc:
            raise RecordValidationError(table, self.id, str(exc)) from exc


RecordFunc = Callable[[AirtableRecord], Any]
FieldsFunc = Callable[[AirtableRecord], Awaitable[Optional[Dict[str, Any]]]]


async def _resolve(value: Union[Any, Awaitable[Any]]) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Base:
    """
    An Airtable base to query.

    Usage:
        async with Base() as base:
            await base.select("Bill Reporting", "", handle_record)
    """

    def __init__(
        self,
        base_id: Optional[str] = None,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = settings or get_settings()
        self.base_id = base_id or settings.airtable_base_id
        api_key = api_key or settings.airtable_api_key
        if not self.base_id:
            settings.require("airtable_base_id")
        if not api_key:
            settings.require("airtable_api_key")

        self._client = client or httpx.AsyncClient(
            base_url=settings.airtable_api_url,
            timeout=settings.http_timeout_seconds,
        )
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def __aenter__(self) -> "Base":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _path(self, table: str, record_id: Optional[str] = None) -> str:
        path = f"/{self.base_id}/{quote(table, safe='')}"
        if record_id:
            path += f"/{quote(record_id, safe='')}"
        return path

    async def _request(
        self,
        operation: str,
        table: str,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(
                method, path, headers=self._headers, params=params, json=json_data
            )
            response.raise_for_status()
            return response.json() if response.content else {}
        except httpx.HTTPStatusError as exc:
            raise AirtableError(operation, table, _describe(exc.response)) from exc
        except httpx.HTTPError as exc:
            raise AirtableError(operation, table, str(exc) or type(exc).__name__) from exc

    # ==================== READ OPERATIONS ====================

    async def select_all(self, table: str, view: str = "") -> List[AirtableRecord]:
        """
        Return every record of a table view.

        An empty view selects the whole table, unfiltered.
        """
        records: List[AirtableRecord] = []
        params: Dict[str, Any] = {}
        if view:
            params["view"] = view

        while True:
            page = await self._request("selecting", table, "GET", self._path(table), params=params)
            records.extend(AirtableRecord.from_api(r) for r in page.get("records", []))
            offset = page.get("offset")
            if not offset:
                break
            params = {**params, "offset": offset}

        logger.debug(f"Selected {len(records)} records from {table} (view={view!r})")
        return records

    async def select(self, table: str, view: str, func: RecordFunc) -> List[Any]:
        """
        Run func for each record of a table view, one record at a time.

        func may be a plain function or a coroutine function.
        """
        results = []
        for record in await self.select_all(table, view):
            results.append(await _resolve(func(record)))
        return results

    async def find(self, table: str, record_id: str, func: RecordFunc) -> Any:
        """Run func on the record with record_id."""
        payload = await self._request("finding", table, "GET", self._path(table, record_id))
        return await _resolve(func(AirtableRecord.from_api(payload)))

    async def find_record(self, table: str, record_id: str) -> AirtableRecord:
        return await self.find(table, record_id, lambda record: record)

    # ==================== WRITE OPERATIONS ====================

    async def update(self, table: str, updates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Update records.

        Args:
            table: Table name
            updates: [{"id": ..., "fields": {...}}, ...], any length

        Returns:
            The updated records as returned by Airtable
        """
        async def _update(chunk):
            data = await self._request(
                "updating", table, "PATCH", self._path(table), json_data={"records": chunk}
            )
            return data.get("records", [])

        pages = await batch_async(_update, updates, MAX_RECORDS_PER_CALL)
        return [record for page in pages for record in page]

    async def create(self, table: str, creates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Create records.

        Args:
            table: Table name
            creates: [{"fields": {...}}, ...], any length
        """
        async def _create(chunk):
            data = await self._request(
                "creating", table, "POST", self._path(table), json_data={"records": chunk}
            )
            return data.get("records", [])

        pages = await batch_async(_create, creates, MAX_RECORDS_PER_CALL)
        return [record for page in pages for record in page]

    async def select_and_update(self, table: str, view: str, fields_func: FieldsFunc) -> List[Any]:
        """
        Run fields_func for each record of a table view and write its result
        back onto that record. Records for which it returns None are left as is.
        """
        async def _apply(record: AirtableRecord):
            fields = await fields_func(record)
            if fields is None:
                return None
            return await self.update(table, [{"id": record.id, "fields": fields}])

        return await self.select(table, view, _apply)


def _describe(response: httpx.Response) -> str:
    try:
        error = response.json().get("error")
    except ValueError:
        error = None
    if isinstance(error, dict):
        error = f"{error.get('type')}: {error.get('message')}"
    return f"{response.status_code} {error or response.reason_phrase}"
