"""
billsync - FastAPI Backend

Keeps the Bill.com Integration Airtable base and Bill.com in step:
- POST /bill-com/sync-bills    mirror Bill.com bill line items into Bill Reporting
- POST /bill-com/create-bills  turn new Check Requests into Bill.com Bills

Run Instructions:
-----------------
1. Install:
   pip install -e .

2. Run the app locally with uvicorn:
   uvicorn main:app --host 0.0.0.0 --port 8000 --reload

3. Test /health endpoint:
   curl http://localhost:8000/health

4. Trigger a dry-run sync:
   curl -X POST "http://localhost:8000/bill-com/sync-bills?dry_run=true"

Both jobs can also be run once from a shell with scripts/run_job.py.
"""
import time

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from billsync.api import bill_com_router
from billsync.di.container import container
from billsync.services.errors import BillSyncError, STATUS_MAP
from billsync.services.logging import log_request, log_error

app = FastAPI(
    title="billsync API",
    description="""
    Triggers for the Airtable / Bill.com sync jobs.

    Set `API_KEY` to require an `X-API-Key` header on the trigger endpoints.
    """,
    version="1.0.0",
)

app.include_router(bill_com_router)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_id = request.headers.get("X-API-Key", request.client.host if request.client else "unknown")

        try:
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                client_id=client_id
            )
            return response
        except Exception as e:
            log_error("request_exception", str(e), {"path": request.url.path, "method": request.method})
            raise


app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(BillSyncError)
async def billsync_exception_handler(request: Request, exc: BillSyncError):
    """Handle all BillSyncErrors with structured responses."""
    log_error(exc.code.value, str(exc), {"path": str(request.url.path), **exc.context})
    return JSONResponse(
        status_code=STATUS_MAP.get(exc.code, 500),
        content=exc.to_dict()
    )


@app.on_event("shutdown")
async def shutdown_event():
    await container.aclose()


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "healthy", "service": "billsync"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
