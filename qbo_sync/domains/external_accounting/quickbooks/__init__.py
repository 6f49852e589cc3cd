from .data_service import QuickBooksDataService
from .repository import QboSyncRepository
from .sync_orchestrator import SyncOrchestrator
from .transform import classify_transaction, to_web_transaction

__all__ = [
    "QuickBooksDataService",
    "QboSyncRepository",
    "SyncOrchestrator",
    "classify_transaction",
    "to_web_transaction",
]
