"""Endpoints that trigger the Bill.com jobs."""
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, HTTPException, status

from billsync.api.deps import get_airtable_base, get_bill_com_api
from billsync.di.container import container
from billsync.integrations.airtable import Base
from billsync.integrations.bill_com import Api
from billsync.models.results import CreateBillsResult, SyncResult
from billsync.services import create_bill, sync_bills
from billsync.services.auth import verify_api_key

router = APIRouter(prefix="/bill-com", tags=["Bill.com"], dependencies=[Depends(verify_api_key)])


@asynccontextmanager
async def exclusive_run(job: str):
    """Refuse with 409 while another run of the same job is in progress."""
    lock = container.job_lock(job)
    if lock.locked():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{job} is already running",
        )
    async with lock:
        yield


@router.post("/sync-bills", response_model=SyncResult)
async def run_sync_bills(
    dry_run: bool = False,
    api: Api = Depends(get_bill_com_api),
    base: Base = Depends(get_airtable_base),
):
    """Mirror active Bill.com line items into Bill Reporting."""
    async with exclusive_run("sync_bills"):
        return await sync_bills.main(api, base, dry_run=dry_run)


@router.post("/create-bills", response_model=CreateBillsResult)
async def run_create_bills(
    api: Api = Depends(get_bill_com_api),
    base: Base = Depends(get_airtable_base),
):
    """Create Bills for every new Check Request."""
    async with exclusive_run("create_bills"):
        return await create_bill.main(api, base)
