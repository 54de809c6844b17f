"""FastAPI dependencies for billsync services."""
from typing import AsyncIterator

from billsync.di.container import container
from billsync.integrations.airtable import Base
from billsync.integrations.bill_com import Api


def get_airtable_base() -> Base:
    return container.base()


async def get_bill_com_api() -> AsyncIterator[Api]:
    api = container.bill_com()
    try:
        yield api
    finally:
        await api.aclose()
