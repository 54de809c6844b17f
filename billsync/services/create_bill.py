"""
Check Request -> Bill.com Bill

For every row in the "New" view of Check Requests:
- resolves (or creates) the Bill.com Vendor to pay
- builds the Bill line items from the linked Check Request Line Items
- creates the Bill, sets its approvers and uploads its supporting documents
- marks the Check Request active with the new Bill's ids

Rows are handled one at a time. Any failure stops the run; nothing already
written to Bill.com or Airtable is undone.
"""
from __future__ import annotations

import logging
import time
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional

import httpx

from billsync.core.config import get_settings
from billsync.integrations.airtable import AirtableRecord, Base
from billsync.integrations.bill_com import Api
from billsync.models.airtable import (
    AirtableAttachment,
    CheckRequest,
    CheckRequestLineItem,
    NewVendor,
)
from billsync.models.results import CreateBillsResult, CreatedBill
from billsync.services import merchant
from billsync.services.errors import AttachmentFetchError, RecordValidationError
from billsync.services.logging import log_job_run

logger = logging.getLogger(__name__)

CHECK_REQUESTS_TABLE = "Check Requests"
NEW_CHECK_REQUESTS_VIEW = "New"
NEW_VENDORS_TABLE = "New Vendors"
EXISTING_VENDORS_TABLE = "Existing Vendors"
LINE_ITEMS_TABLE = "Check Request Line Items"
CHART_OF_ACCOUNTS_TABLE = "Chart of Accounts"
INTERNAL_CUSTOMERS_TABLE = "Internal Customers"
USERS_TABLE = "Users"


def primary_org_bill_com_id(primary_org: str) -> str:
    """The column holding a row's Bill.com id, e.g. "MSO Bill.com ID"."""
    return f"{primary_org} Bill.com ID"


def default_invoice_id(requester_name: str, record_id: str) -> str:
    """
    15 characters of the requester's name and 3 from the unique part of the
    Airtable record id (after "rec"). Bill.com caps invoice numbers at 21
    characters.
    """
    return f"{requester_name[:15]} - {record_id[3:6]}"


def invoice_id_for(request: CheckRequest) -> str:
    return request.vendor_invoice_id or default_invoice_id(request.requester_name, request.id)


def line_item_description(item: CheckRequestLineItem) -> Optional[str]:
    """
    Expense line items carry their merchant details in the description.

    Raises RecordValidationError when an expense item lacks a merchant part.
    """
    if item.item_expense_date is None:
        return item.description
    info = merchant.MerchantInfo(
        date=item.item_expense_date,
        name=item.merchant_name or "",
        address=item.merchant_address or "",
        city=item.merchant_city or "",
        state=item.merchant_state or "",
        zip=item.merchant_zip_code or "",
        description=item.description or "",
    )
    try:
        return merchant.pack(info)
    except ValueError as exc:
        raise RecordValidationError(LINE_ITEMS_TABLE, item.id, str(exc)) from exc


def bill_description(request: CheckRequest) -> str:
    return f"Submitted by {request.requester_name} ({request.requester_email})."


class BillCreator:
    """Turns one Check Request into a Bill.com Bill."""

    def __init__(
        self,
        api: Api,
        base: Base,
        final_approver_user_id: str,
        primary_org: str,
        http_client: httpx.AsyncClient,
    ):
        self.api = api
        self.base = base
        self.final_approver_user_id = final_approver_user_id
        self.id_field = primary_org_bill_com_id(primary_org)
        self.http_client = http_client

    async def get_bill_com_id(self, table: str, airtable_id: str) -> Optional[str]:
        record = await self.base.find_record(table, airtable_id)
        return record.get(self.id_field)

    # ==================== VENDOR ====================

    async def create_vendor(self, new_vendor_id: str) -> str:
        """Create the Vendor in Bill.com and record its id on the New Vendors row."""
        record = await self.base.find_record(NEW_VENDORS_TABLE, new_vendor_id)
        new_vendor = record.parse(NewVendor, NEW_VENDORS_TABLE)
        vendor_id = await self.api.create(
            "Vendor",
            {
                "name": new_vendor.name,
                "address1": new_vendor.address_line_1,
                "address2": new_vendor.address_line_2,
                "addressCity": new_vendor.city,
                "addressState": new_vendor.state,
                "addressZip": new_vendor.zip_code,
                "addressCountry": new_vendor.country,
                "email": new_vendor.email,
                "phone": new_vendor.phone,
            },
        )
        await self.base.update(
            NEW_VENDORS_TABLE,
            [{"id": new_vendor_id, "fields": {self.id_field: vendor_id}}],
        )
        return vendor_id

    async def resolve_vendor(self, request: CheckRequest) -> Optional[str]:
        linked = request.new_vendor if request.new_vendor_flag else request.vendor
        if not linked:
            raise RecordValidationError(CHECK_REQUESTS_TABLE, request.id, "No vendor linked")
        if request.new_vendor_flag:
            return await self.create_vendor(linked[0])
        return await self.get_bill_com_id(EXISTING_VENDORS_TABLE, linked[0])

    # ==================== LINE ITEMS ====================

    async def build_line_item(self, item_id: str) -> Dict[str, Any]:
        record = await self.base.find_record(LINE_ITEMS_TABLE, item_id)
        item = record.parse(CheckRequestLineItem, LINE_ITEMS_TABLE)

        chart_of_account_id = None
        if item.category:
            chart_of_account_id = await self.get_bill_com_id(CHART_OF_ACCOUNTS_TABLE, item.category[0])

        return {
            "entity": "BillLineItem",
            "amount": item.amount,
            "chartOfAccountId": chart_of_account_id,
            "customerId": await self.get_bill_com_id(INTERNAL_CUSTOMERS_TABLE, item.project[0]),
            "description": line_item_description(item),
        }

    async def build_line_items(self, request: CheckRequest) -> List[Dict[str, Any]]:
        return [await self.build_line_item(item_id) for item_id in request.line_items]

    # ==================== APPROVERS ====================

    async def set_approvers(self, bill_id: str, approver_airtable_ids: List[str]) -> None:
        approvers = [await self.get_bill_com_id(USERS_TABLE, aid) for aid in approver_airtable_ids]
        approvers.append(self.final_approver_user_id)
        await self.api.data_call(
            "SetApprovers",
            {"objectId": bill_id, "entity": "Bill", "approvers": approvers},
        )

    # ==================== DOCUMENTS ====================

    async def fetch_document(self, doc: AirtableAttachment) -> httpx.Response:
        response = await self.http_client.get(doc.url, follow_redirects=True)
        if not response.is_success:
            raise AttachmentFetchError(response.status_code, doc.filename, response.reason_phrase)
        return response

    async def upload_documents(self, bill_id: str, docs: List[AirtableAttachment]) -> None:
        for doc in docs:
            response = await self.fetch_document(doc)
            await self.api.upload_attachment(
                bill_id,
                doc.filename,
                response.content,
                doc.type or response.headers.get("content-type", "application/octet-stream"),
            )

    # ==================== CHECK REQUEST ====================

    async def create_bill(self, record: AirtableRecord) -> Optional[Dict[str, Any]]:
        """
        Create the Bill for one Check Request.

        Returns the fields to write back onto the Check Request, or None
        when the row already points at a Bill.
        """
        if record.get(self.id_field):
            logger.warning(f"Check Request {record.id} already has Bill {record.get(self.id_field)}; skipping")
            return None

        request = record.parse(CheckRequest, CHECK_REQUESTS_TABLE)
        # Line items first: a row that fails validation leaves Bill.com untouched
        line_items = await self.build_line_items(request)
        vendor_id = await self.resolve_vendor(request)

        invoice_id = invoice_id_for(request)
        bill_id = await self.api.create(
            "Bill",
            {
                "vendorId": vendor_id,
                "invoiceNumber": invoice_id,
                "invoiceDate": request.expense_date,
                "dueDate": request.due_date,
                "description": bill_description(request),
                "billLineItems": line_items,
            },
        )

        await self.set_approvers(bill_id, request.approvers)
        await self.upload_documents(bill_id, request.supporting_documents)

        logger.info(f"Created Bill {bill_id} ({invoice_id}) for Check Request {request.id}")
        return {
            "Active": True,
            "Vendor Invoice ID": invoice_id,
            self.id_field: bill_id,
        }


async def main(
    api: Api,
    base: Optional[Base] = None,
    final_approver_user_id: Optional[str] = None,
    primary_org: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> CreateBillsResult:
    """
    Create Bill.com Bills for every new Check Request.

    Args:
        api: Bill.com connection; logged in to the primary org here
        base: The Bill.com Integration base
        final_approver_user_id: Bill.com user appended to every approver list
        primary_org: Names the "<Org> Bill.com ID" columns
        http_client: Used to download supporting documents; one with the
            HTTP_TIMEOUT_SECONDS timeout is opened for the run when omitted
    """
    started = time.time()
    settings = get_settings()
    base = base or Base()
    primary_org = primary_org or settings.primary_org
    final_approver_user_id = final_approver_user_id or settings.final_approver_user_id
    if not final_approver_user_id:
        settings.require("final_approver_user_id")

    async with AsyncExitStack() as stack:
        if http_client is None:
            http_client = await stack.enter_async_context(
                httpx.AsyncClient(timeout=settings.http_timeout_seconds)
            )
        creator = BillCreator(api, base, final_approver_user_id, primary_org, http_client)
        result = await _create_bills(api, base, creator)

    log_job_run(
        "create_bills",
        (time.time() - started) * 1000,
        created=len(result.created),
        skipped=result.skipped,
    )
    return result


async def _create_bills(api: Api, base: Base, creator: BillCreator) -> CreateBillsResult:
    result = CreateBillsResult()

    async def _fields(record: AirtableRecord) -> Optional[Dict[str, Any]]:
        fields = await creator.create_bill(record)
        if fields is None:
            result.skipped += 1
        else:
            result.created.append(
                CreatedBill(
                    check_request_id=record.id,
                    bill_id=fields[creator.id_field],
                    invoice_id=fields["Vendor Invoice ID"],
                )
            )
        return fields

    await api.primary_org_login()
    await base.select_and_update(CHECK_REQUESTS_TABLE, NEW_CHECK_REQUESTS_VIEW, _fields)
    return result
