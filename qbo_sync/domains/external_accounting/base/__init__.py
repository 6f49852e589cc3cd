from .models import EntitySyncCount, SyncResult, SyncState, SyncSummary
from .types import (
    RawEntityRecord,
    SyncStateUpdate,
    TransactionClassification,
    WebTransaction,
    WebTransactionLine,
)

__all__ = [
    "EntitySyncCount",
    "SyncResult",
    "SyncState",
    "SyncSummary",
    "RawEntityRecord",
    "SyncStateUpdate",
    "TransactionClassification",
    "WebTransaction",
    "WebTransactionLine",
]
