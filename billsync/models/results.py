"""Run summaries returned by the two jobs and by the HTTP endpoints."""
from typing import List

from pydantic import Field

from billsync.models.base import BSBaseModel


class SyncResult(BSBaseModel):
    updated: int = 0
    deactivated: int = 0
    created: int = 0
    dry_run: bool = False


class CreatedBill(BSBaseModel):
    check_request_id: str
    bill_id: str
    invoice_id: str


class CreateBillsResult(BSBaseModel):
    created: List[CreatedBill] = Field(default_factory=list)
    skipped: int = 0
