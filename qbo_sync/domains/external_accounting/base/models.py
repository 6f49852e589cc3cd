from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class EntitySyncCount(BaseModel):
    """Per-entity counters for one sync run."""

    entity_type: str
    fetched: int = 0
    upserted: int = 0
    skipped: int = 0
    deleted: int = 0
    pages: int = 0


class SyncResult(BaseModel):
    """Result of a sync operation."""

    mode: str
    tenant_id: str
    realm_id: str
    entities: List[EntitySyncCount] = Field(default_factory=list)
    duration_seconds: float = 0.0
    since: Optional[datetime] = None
    watermark: Optional[datetime] = None

    @property
    def count(self) -> int:
        return sum(entity.upserted for entity in self.entities)


class SyncState(BaseModel):
    """Persisted watermarks for one tenant and realm."""

    tenant_id: str
    realm_id: str
    last_cdc_time: Optional[datetime] = None
    last_full_sync_at: Optional[datetime] = None


class SyncSummary(BaseModel):
    """Row counts per entity type alongside the watermark."""

    state: SyncState
    raw_counts: Dict[str, int] = Field(default_factory=dict)
    deleted_counts: Dict[str, int] = Field(default_factory=dict)
    web_transaction_counts: Dict[str, int] = Field(default_factory=dict)
