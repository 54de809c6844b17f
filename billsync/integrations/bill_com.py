"""
Bill.com v2 API client.

Every v2 endpoint is a form POST to <api>/<Endpoint>.json carrying the
developer key, the session id and a JSON `data` payload. Responses share
one envelope:

    {"response_status": 0, "response_message": "Success", "response_data": ...}

A non-zero status carries {"error_code": "BDC_xxxx", "error_message": ...}
in response_data and is raised as BillComError.
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from billsync.core.config import Settings, get_settings
from billsync.services.errors import BillComError

logger = logging.getLogger(__name__)

# Max entities per List call.
PAGE_SIZE = 999


class ActiveStatus(str, Enum):
    """Bill.com isActive values."""
    ACTIVE = "1"
    INACTIVE = "2"


def is_active_enum(is_active: bool) -> ActiveStatus:
    return ActiveStatus.ACTIVE if is_active else ActiveStatus.INACTIVE


def api_filter(field: str, op: str, value: Any) -> Dict[str, Any]:
    """A List endpoint filter, e.g. api_filter("isActive", "=", "1")."""
    return {"field": field, "op": op, "value": value}


def entity_data(entity: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Wrap fields into the Crud payload shape.

    Bill.com decodes entity names, so a name is URL-quoted on the way in.
    """
    obj: Dict[str, Any] = {"entity": entity, **data}
    if isinstance(obj.get("name"), str):
        obj["name"] = quote(obj["name"], safe="")
    return {"obj": obj}


class Api:
    """
    A Bill.com API connection.

    Usage:
        api = Api()
        await api.primary_org_login()
        bills = await api.list_active("Bill")
    """

    def __init__(
        self,
        dev_key: Optional[str] = None,
        user_name: Optional[str] = None,
        password: Optional[str] = None,
        org_id: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = settings or get_settings()
        self.settings = settings
        self._dev_key = dev_key or settings.bill_com_dev_key
        self._user_name = user_name or settings.bill_com_user_name
        self._password = password or settings.bill_com_password
        self.primary_org_id = org_id or settings.bill_com_org_id
        self._session_id: Optional[str] = None
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.api_url = settings.bill_com_api_url
        self.app_url = settings.bill_com_app_url

    async def __aenter__(self) -> "Api":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ==================== SESSION ====================

    def get_session_id(self) -> Optional[str]:
        return self._session_id

    def get_dev_key(self) -> Optional[str]:
        return self._dev_key

    async def login(self, org_id: str) -> str:
        """Log in to an org and keep the session id for later calls."""
        if not (self._dev_key and self._user_name and self._password):
            self.settings.require("bill_com_dev_key", "bill_com_user_name", "bill_com_password")
        body = {
            "devKey": self._dev_key,
            "userName": self._user_name,
            "password": self._password,
            "orgId": org_id,
        }
        data = await self._post("Login", body)
        self._session_id = data["sessionId"]
        logger.info(f"Logged in to Bill.com org {org_id}")
        return self._session_id

    async def primary_org_login(self) -> str:
        if not self.primary_org_id:
            self.settings.require("bill_com_org_id")
        return await self.login(self.primary_org_id)

    # ==================== CALLS ====================

    async def _post(
        self,
        endpoint: str,
        body: Dict[str, Any],
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.api_url}/{endpoint}.json"
        try:
            response = await self._client.post(url, data=body, files=files)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise BillComError(
                endpoint, None, f"HTTP {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise BillComError(endpoint, None, str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise BillComError(endpoint, None, f"Invalid JSON response: {exc}") from exc

        data = payload.get("response_data")
        if str(payload.get("response_status")) != "0":
            data = data if isinstance(data, dict) else {}
            raise BillComError(
                endpoint,
                data.get("error_code"),
                data.get("error_message") or payload.get("response_message") or "Unknown error",
            )
        return data

    async def api_call(
        self,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Call an endpoint with the current session."""
        body: Dict[str, Any] = {"devKey": self._dev_key, "sessionId": self._session_id}
        if data is not None:
            body["data"] = json.dumps(data)
        return await self._post(endpoint, body, files=files)

    async def data_call(self, endpoint: str, data: Dict[str, Any]) -> Any:
        """Call an endpoint and return its response_data."""
        return await self.api_call(endpoint, data)

    async def list(
        self,
        entity: str,
        filters: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """Page through every entity matching filters."""
        results: List[Dict[str, Any]] = []
        start = 0
        while True:
            data: Dict[str, Any] = {"start": start, "max": PAGE_SIZE}
            if filters:
                data["filters"] = filters
            page = await self.api_call(f"List/{entity}", data) or []
            results.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        return results

    async def list_active(self, entity: str) -> List[Dict[str, Any]]:
        return await self.list(entity, [api_filter("isActive", "=", is_active_enum(True).value)])

    async def create(self, entity: str, data: Dict[str, Any]) -> str:
        """Create an entity and return its id."""
        created = await self.api_call(f"Crud/Create/{entity}", entity_data(entity, data))
        logger.info(f"Created Bill.com {entity} {created['id']}")
        return created["id"]

    async def upload_attachment(
        self,
        bill_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> Any:
        """Attach a document to a Bill."""
        return await self.api_call(
            "UploadAttachment",
            {"id": bill_id, "fileName": filename},
            files={"file": (filename, content, content_type)},
        )

    def document_page_url(self, entity_id: str, page_number: int) -> str:
        """A viewable URL of one page of an entity's document, bound to this session."""
        return (
            f"{self.app_url}/is/BillImageServlet?entityId={entity_id}"
            f"&sessionId={self._session_id}&pageNumber={page_number}"
        )
