from billsync.api.bill_com import router as bill_com_router

__all__ = ["bill_com_router"]
