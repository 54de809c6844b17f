"""
billsync Error Handling

Specific error types with readable messages and debugging context.
"""
from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for client handling."""
    # Configuration errors
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_RECORD = "INVALID_RECORD"

    # External service errors
    AIRTABLE_ERROR = "AIRTABLE_ERROR"
    BILL_COM_ERROR = "BILL_COM_ERROR"
    ATTACHMENT_FETCH_FAILED = "ATTACHMENT_FETCH_FAILED"


class BillSyncError(Exception):
    """Base exception with structured error info."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.detail = detail
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API response format."""
        result = {
            "error": self.code.value,
            "message": self.message
        }
        if self.detail:
            result["detail"] = self.detail
        if self.context:
            result["context"] = self.context
        return result


class ConfigError(BillSyncError):
    """Error in configuration."""

    def __init__(self, field: str, detail: str):
        super().__init__(
            code=ErrorCode.INVALID_CONFIG,
            message=f"Invalid configuration for '{field}'",
            detail=detail,
            context={"field": field}
        )


class RecordValidationError(BillSyncError):
    """An Airtable row did not match the schema its table requires."""

    def __init__(self, table: str, record_id: Optional[str], detail: str):
        super().__init__(
            code=ErrorCode.INVALID_RECORD,
            message=f"Invalid record {record_id} in Airtable Table {table}",
            detail=detail,
            context={"table": table, "record_id": record_id}
        )


class AirtableError(BillSyncError):
    """
    An Airtable call failed.

    `operation` is the verb of the failed call (selecting, updating,
    creating, finding) and ends up in the message together with the table.
    """

    def __init__(self, operation: str, table: str, detail: str):
        super().__init__(
            code=ErrorCode.AIRTABLE_ERROR,
            message=f"Error {operation} records in Airtable Table {table}: {detail}",
            detail=detail,
            context={"operation": operation, "table": table}
        )
        self.operation = operation
        self.table = table


class BillComError(BillSyncError):
    """Bill.com answered with a failure envelope (or not at all)."""

    def __init__(self, endpoint: str, error_code: Optional[str], detail: str):
        label = f"{error_code}: {detail}" if error_code else detail
        super().__init__(
            code=ErrorCode.BILL_COM_ERROR,
            message=f"Bill.com {endpoint} failed ({label})",
            detail=detail,
            context={"endpoint": endpoint, "error_code": error_code}
        )
        self.endpoint = endpoint
        self.error_code = error_code


class AttachmentFetchError(BillSyncError):
    """A supporting document could not be downloaded."""

    def __init__(self, status: int, filename: str, status_text: str):
        super().__init__(
            code=ErrorCode.ATTACHMENT_FETCH_FAILED,
            message=f"Status {status} ({status_text}) while fetching {filename}",
            detail=status_text,
            context={"status": status, "filename": filename}
        )
        self.status = status
        self.filename = filename
        self.status_text = status_text


STATUS_MAP = {
    ErrorCode.INVALID_CONFIG: 500,
    ErrorCode.INVALID_RECORD: 422,
    ErrorCode.AIRTABLE_ERROR: 502,
    ErrorCode.BILL_COM_ERROR: 502,
    ErrorCode.ATTACHMENT_FETCH_FAILED: 502,
}
