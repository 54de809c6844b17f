#!/usr/bin/env python3
"""
Run one billsync job and exit.

Usage:
    python scripts/run_job.py sync-bills [--dry-run]
    python scripts/run_job.py create-bills

Environment Variables Required:
    AIRTABLE_API_KEY, AIRTABLE_BASE_ID
    BILL_COM_DEV_KEY, BILL_COM_USER_NAME, BILL_COM_PASSWORD, BILL_COM_ORG_ID
    FINAL_APPROVER_USER_ID (create-bills only)
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from billsync.core.config import get_settings
from billsync.integrations.airtable import Base
from billsync.integrations.bill_com import Api
from billsync.services import create_bill, sync_bills
from billsync.services.errors import BillSyncError
from billsync.services.logging import log_error


async def run(job: str, dry_run: bool = False):
    settings = get_settings()
    async with Api(settings=settings) as api, Base(settings=settings) as base:
        if job == "sync-bills":
            return await sync_bills.main(api, base, dry_run=dry_run)
        return await create_bill.main(api, base)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a billsync job once")
    parser.add_argument("job", choices=["sync-bills", "create-bills"])
    parser.add_argument("--dry-run", action="store_true", help="sync-bills: compute changes without writing")
    args = parser.parse_args(argv)

    try:
        result = asyncio.run(run(args.job, dry_run=args.dry_run))
    except BillSyncError as e:
        log_error(e.code.value, str(e), e.context)
        return 1

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
