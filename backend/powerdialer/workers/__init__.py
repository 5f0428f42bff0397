"""
Workers Package
Background workers for lead reconciliation
"""
from powerdialer.workers.sheet_sync_worker import SheetSyncWorker

__all__ = [
    "SheetSyncWorker",
]
