"""
billsync Integrations

Clients for the two systems kept in sync:
- Airtable (the Bill.com Integration base)
- Bill.com (v2 API)
"""

from billsync.integrations.airtable import AirtableRecord, Base
from billsync.integrations.bill_com import Api, ActiveStatus

__all__ = [
    "ActiveStatus",
    "AirtableRecord",
    "Api",
    "Base",
]
