from billsync.models.base import BSBaseModel, ExternalModel
from billsync.models.airtable import (
    AirtableAttachment,
    CheckRequest,
    CheckRequestLineItem,
    NewVendor,
)
from billsync.models.bill_com import (
    BillComBill,
    BillComLineItem,
    BillComNamedEntity,
    BillComVendor,
)
from billsync.models.results import CreateBillsResult, SyncResult

__all__ = [
    "AirtableAttachment",
    "BSBaseModel",
    "BillComBill",
    "BillComLineItem",
    "BillComNamedEntity",
    "BillComVendor",
    "CheckRequest",
    "CheckRequestLineItem",
    "CreateBillsResult",
    "ExternalModel",
    "NewVendor",
    "SyncResult",
]
