"""Typed rows of the Bill.com Integration Airtable base."""
from typing import List, Optional, Union

from pydantic import Field, field_validator

from billsync.models.base import ExternalModel


class AirtableAttachment(ExternalModel):
    url: str
    filename: str
    id: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None


class CheckRequest(ExternalModel):
    """A row of the Check Requests table (view "New" holds unprocessed ones)."""
    id: str
    new_vendor_flag: bool = Field(default=False, alias="New Vendor?")
    new_vendor: List[str] = Field(default_factory=list, alias="New Vendor")
    vendor: List[str] = Field(default_factory=list, alias="Vendor")
    line_items: List[str] = Field(default_factory=list, alias="Line Items")
    requester_name: str = Field(alias="Requester Name")
    requester_email: Optional[str] = Field(default=None, alias="Requester Email")
    vendor_invoice_id: Optional[str] = Field(default=None, alias="Vendor Invoice ID")
    expense_date: Optional[str] = Field(default=None, alias="Expense Date")
    due_date: Optional[str] = Field(default=None, alias="Due Date")
    approvers: List[str] = Field(default_factory=list, alias="Approvers")
    supporting_documents: List[AirtableAttachment] = Field(
        default_factory=list, alias="Supporting Documents"
    )


class NewVendor(ExternalModel):
    """A row of the New Vendors table."""
    id: str
    name: str = Field(alias="Name")
    address_line_1: Optional[str] = Field(default=None, alias="Address Line 1")
    address_line_2: Optional[str] = Field(default=None, alias="Address Line 2")
    city: Optional[str] = Field(default=None, alias="City")
    state: Optional[str] = Field(default=None, alias="State")
    zip_code: Optional[str] = Field(default=None, alias="Zip Code")
    country: Optional[str] = Field(default=None, alias="Country")
    email: Optional[str] = Field(default=None, alias="Email")
    phone: Optional[str] = Field(default=None, alias="Phone")

    @field_validator("zip_code", mode="before")
    @classmethod
    def _zip_as_text(cls, value: Union[int, float, str, None]) -> Optional[str]:
        # Airtable number fields come back as int/float
        if value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)


class CheckRequestLineItem(ExternalModel):
    """A row of the Check Request Line Items table."""
    id: str
    amount: float = Field(alias="Amount")
    category: Optional[List[str]] = Field(default=None, alias="Category")
    project: List[str] = Field(alias="Project", min_length=1)
    description: Optional[str] = Field(default=None, alias="Description")
    item_expense_date: Optional[str] = Field(default=None, alias="Item Expense Date")
    merchant_name: Optional[str] = Field(default=None, alias="Merchant Name")
    merchant_address: Optional[str] = Field(default=None, alias="Merchant Address")
    merchant_city: Optional[str] = Field(default=None, alias="Merchant City")
    merchant_state: Optional[str] = Field(default=None, alias="Merchant State")
    merchant_zip_code: Optional[str] = Field(default=None, alias="Merchant Zip Code")

    @field_validator("merchant_zip_code", mode="before")
    @classmethod
    def _zip_as_text(cls, value: Union[int, float, str, None]) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
