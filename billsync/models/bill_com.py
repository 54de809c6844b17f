"""Bill.com entities as returned by the v2 List endpoints."""
from typing import List, Optional

from pydantic import Field, field_validator

from billsync.models.base import ExternalModel


class BillComNamedEntity(ExternalModel):
    """Any entity where only id and name matter (ChartOfAccount, Customer)."""
    id: str
    name: Optional[str] = None


class BillComVendor(ExternalModel):
    id: str
    name: Optional[str] = None
    address1: Optional[str] = None
    address_city: Optional[str] = Field(default=None, alias="addressCity")
    address_state: Optional[str] = Field(default=None, alias="addressState")
    address_zip: Optional[str] = Field(default=None, alias="addressZip")

    @field_validator("address_zip", mode="before")
    @classmethod
    def _zip_as_text(cls, value):
        return None if value is None else str(value)


class BillComLineItem(ExternalModel):
    id: str
    amount: Optional[float] = None
    description: Optional[str] = None
    chart_of_account_id: Optional[str] = Field(default=None, alias="chartOfAccountId")
    customer_id: Optional[str] = Field(default=None, alias="customerId")
    created_time: Optional[str] = Field(default=None, alias="createdTime")


class BillComBill(ExternalModel):
    id: str
    vendor_id: Optional[str] = Field(default=None, alias="vendorId")
    invoice_number: Optional[str] = Field(default=None, alias="invoiceNumber")
    invoice_date: Optional[str] = Field(default=None, alias="invoiceDate")
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    description: Optional[str] = None
    approval_status: Optional[str] = Field(default=None, alias="approvalStatus")
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")
    bill_line_items: List[BillComLineItem] = Field(default_factory=list, alias="billLineItems")

    @field_validator("approval_status", "payment_status", mode="before")
    @classmethod
    def _status_as_text(cls, value):
        # Status codes are documented as strings but arrive as ints from some endpoints
        return None if value is None else str(value)
