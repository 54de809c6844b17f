# Lazy imports to avoid dependency chains at startup
def __getattr__(name):
    if name == "BillCreator":
        from billsync.services.create_bill import BillCreator
        return BillCreator
    elif name == "ReportingDiff":
        from billsync.services.sync_bills import ReportingDiff
        return ReportingDiff
    raise AttributeError(f"module 'billsync.services' has no attribute '{name}'")

__all__ = [
    "BillCreator",
    "ReportingDiff",
]
