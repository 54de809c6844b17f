"""
Bill Reporting Sync

Mirrors every active Bill.com bill line item into the Bill Reporting table
of the Bill.com Integration base.

One run:
1. Lists the active Bills (with their line items) and the lookup data for
   Vendors, Chart of Accounts and Customers.
2. Computes the full field set of every line item's reporting row.
3. Walks the whole Bill Reporting table once: rows whose line item is still
   active get the new fields, rows whose line item is gone are flagged
   inactive (never deleted).
4. Creates rows for line items seen for the first time.

There is no rollback: a failure part way leaves earlier writes in place.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from billsync.core.config import get_settings
from billsync.core.utils import get_yyyy_mm_dd
from billsync.integrations.airtable import AirtableRecord, Base
from billsync.integrations.bill_com import Api
from billsync.models.bill_com import (
    BillComBill,
    BillComLineItem,
    BillComNamedEntity,
    BillComVendor,
)
from billsync.models.results import SyncResult
from billsync.services import merchant
from billsync.services.logging import log_job_run

logger = logging.getLogger(__name__)

BILL_REPORTING_TABLE = "Bill Reporting"

APPROVAL_STATUSES = {
    "0": "Unassigned",
    "1": "Assigned",
    "4": "Approving",
    "3": "Approved",
    "5": "Denied",
}

PAYMENT_STATUSES = {
    "1": "Open",
    "4": "Scheduled",
    "0": "Paid In Full",
    "2": "Partial Payment",
}

SUBMITTER_PATTERN = re.compile(r"Submitted by (.+) \(")


def bill_com_id_field_name(primary_org: str, entity: str) -> str:
    """e.g. "MSO Bill.com Vendor ID"."""
    return f"{primary_org} Bill.com {entity} ID"


@dataclass
class VendorInfo:
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


async def get_entity_data(api: Api, entity: str, data_func: Callable[[Dict[str, Any]], Any]) -> Dict[str, Any]:
    """Map the id of every active entity to data_func(entity)."""
    return {e["id"]: data_func(e) for e in await api.list_active(entity)}


async def get_names(api: Api, entity: str) -> Dict[str, Optional[str]]:
    return await get_entity_data(api, entity, lambda e: BillComNamedEntity.model_validate(e).name)


def _vendor_info(payload: Dict[str, Any]) -> VendorInfo:
    vendor = BillComVendor.model_validate(payload)
    return VendorInfo(
        name=vendor.name,
        address=vendor.address1,
        city=vendor.address_city,
        state=vendor.address_state,
        zip=vendor.address_zip,
    )


@dataclass
class ReportingRow:
    """The fields of one Bill Reporting row, before naming them for Airtable."""
    line_item_id: str
    bill_id: str
    submitted_by: Optional[str]
    creation_date: Optional[str]
    invoice_date: Optional[str]
    expense_date: Optional[str]
    vendor_id: Optional[str]
    vendor: VendorInfo
    description: Optional[str]
    chart_of_account_id: Optional[str]
    chart_of_account: Optional[str]
    amount: Optional[float]
    customer_id: Optional[str]
    customer: Optional[str]
    invoice_id: Optional[str]
    supporting_documents: List[Dict[str, str]] = field(default_factory=list)
    approval_status: Optional[str] = None
    payment_status: Optional[str] = None

    def to_fields(self, primary_org: str) -> Dict[str, Any]:
        def id_field(entity: str) -> str:
            return bill_com_id_field_name(primary_org, entity)

        return {
            "Active": True,
            id_field("Line Item"): self.line_item_id,
            "Submitted By": self.submitted_by,
            "Creation Date": self.creation_date,
            "Invoice Date": self.invoice_date,
            "Expense Date": self.expense_date,
            id_field("Vendor"): self.vendor_id,
            "Vendor Name": self.vendor.name,
            "Vendor Address": self.vendor.address,
            "Vendor City": self.vendor.city,
            "Vendor State": self.vendor.state,
            "Vendor Zip Code": self.vendor.zip,
            "Description": self.description,
            id_field("Chart of Account"): self.chart_of_account_id,
            "Chart of Account": self.chart_of_account,
            "Amount": self.amount,
            id_field("Customer"): self.customer_id,
            "Customer": self.customer,
            "Invoice ID": self.invoice_id,
            "Supporting Documents": self.supporting_documents,
            "Approval Status": self.approval_status,
            "Payment Status": self.payment_status,
            id_field("Bill"): self.bill_id,
        }


def build_row(
    bill: BillComBill,
    item: BillComLineItem,
    vendors: Dict[str, VendorInfo],
    chart_of_accounts: Dict[str, Optional[str]],
    customers: Dict[str, Optional[str]],
    docs: List[Dict[str, str]],
) -> ReportingRow:
    """
    Compute the reporting row of one line item.

    Merchant details packed into the item description win over the Bill's
    vendor; the expense date then falls back to the invoice date.
    """
    submitter = SUBMITTER_PATTERN.search(bill.description or "")
    found = merchant.parse(item.description)
    if found:
        vendor = VendorInfo(
            name=found.name,
            address=found.address,
            city=found.city,
            state=found.state,
            zip=found.zip,
        )
        expense_date = found.date
        description = found.description
    else:
        vendor = vendors.get(bill.vendor_id) or VendorInfo()
        expense_date = bill.invoice_date
        description = item.description

    return ReportingRow(
        line_item_id=item.id,
        bill_id=bill.id,
        submitted_by=submitter.group(1) if submitter else None,
        creation_date=get_yyyy_mm_dd(item.created_time),
        invoice_date=bill.invoice_date,
        expense_date=expense_date,
        vendor_id=bill.vendor_id,
        vendor=vendor,
        description=description,
        chart_of_account_id=item.chart_of_account_id,
        chart_of_account=chart_of_accounts.get(item.chart_of_account_id),
        amount=item.amount,
        customer_id=item.customer_id,
        customer=customers.get(item.customer_id),
        invoice_id=bill.invoice_number,
        supporting_documents=docs,
        approval_status=APPROVAL_STATUSES.get(bill.approval_status),
        payment_status=PAYMENT_STATUSES.get(bill.payment_status),
    )


async def get_document_urls(api: Api, bill_id: str) -> List[Dict[str, str]]:
    pages = await api.data_call("GetDocumentPages", {"id": bill_id})
    num_pages = int(((pages or {}).get("documentPages") or {}).get("numPages") or 0)
    return [{"url": api.document_page_url(bill_id, n)} for n in range(1, num_pages + 1)]


async def build_changes(api: Api, primary_org: str) -> Dict[str, Dict[str, Any]]:
    """
    Compute the reporting fields of every active line item, keyed by line
    item id. Expects a logged in api.
    """
    vendors = await get_entity_data(api, "Vendor", _vendor_info)
    chart_of_accounts = await get_names(api, "ChartOfAccount")
    customers = await get_names(api, "Customer")

    changes: Dict[str, Dict[str, Any]] = {}
    for payload in await api.list_active("Bill"):
        bill = BillComBill.model_validate(payload)
        docs = await get_document_urls(api, bill.id)
        for item in bill.bill_line_items:
            row = build_row(bill, item, vendors, chart_of_accounts, customers, docs)
            changes[item.id] = row.to_fields(primary_org)
    return changes


@dataclass
class SyncPlan:
    updates: List[Dict[str, Any]] = field(default_factory=list)
    creates: List[Dict[str, Any]] = field(default_factory=list)
    deactivated: int = 0


class ReportingDiff:
    """
    Diffs existing Bill Reporting rows against the computed changes.

    Feed every row of the table to stage(), then call plan(). changes is
    consumed: entries matched by a row are removed, so what remains are the
    line items that still need a row.

    Keys are expected to be unique. If several rows share a key, the first
    one staged keeps it and the others are deactivated.
    """

    def __init__(self, changes: Dict[str, Dict[str, Any]], key_field: str):
        self.changes = changes
        self.key_field = key_field
        self._plan = SyncPlan()
        self._matched: set = set()

    def stage(self, record: AirtableRecord) -> None:
        key = record.get(self.key_field)
        fields = self.changes.pop(key, None) if key is not None else None
        if fields is None:
            if key in self._matched:
                logger.warning(f"Duplicate {self.key_field} {key} on record {record.id}; deactivating it")
            self._plan.deactivated += 1
            fields = {"Active": False}
        else:
            self._matched.add(key)
        self._plan.updates.append({"id": record.id, "fields": fields})

    def plan(self) -> SyncPlan:
        for key, fields in self.changes.items():
            fields[self.key_field] = key
            self._plan.creates.append({"fields": fields})
        self.changes = {}
        return self._plan


def plan_sync(
    existing: Iterable[AirtableRecord],
    changes: Dict[str, Dict[str, Any]],
    key_field: str,
) -> SyncPlan:
    diff = ReportingDiff(changes, key_field)
    for record in existing:
        diff.stage(record)
    return diff.plan()


async def main(
    api: Api,
    base: Optional[Base] = None,
    dry_run: bool = False,
    primary_org: Optional[str] = None,
) -> SyncResult:
    """
    Run one Bill Reporting sync.

    Args:
        api: Bill.com connection; logged in to the primary org here
        base: The Bill.com Integration base
        dry_run: Compute the diff without writing to Airtable
        primary_org: Names the "<Org> Bill.com ... ID" columns
    """
    started = time.time()
    base = base or Base()
    primary_org = primary_org or get_settings().primary_org

    await api.primary_org_login()
    changes = await build_changes(api, primary_org)

    diff = ReportingDiff(changes, bill_com_id_field_name(primary_org, "Line Item"))
    await base.select(BILL_REPORTING_TABLE, "", diff.stage)
    plan = diff.plan()

    if not dry_run:
        await base.update(BILL_REPORTING_TABLE, plan.updates)
        await base.create(BILL_REPORTING_TABLE, plan.creates)

    result = SyncResult(
        updated=len(plan.updates) - plan.deactivated,
        deactivated=plan.deactivated,
        created=len(plan.creates),
        dry_run=dry_run,
    )
    log_job_run(
        "sync_bills",
        (time.time() - started) * 1000,
        updated=result.updated,
        deactivated=result.deactivated,
        created=result.created,
        dry_run=dry_run,
    )
    return result
