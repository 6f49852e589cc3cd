import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from prisma import Prisma

from qbo_sync.core.settings import Settings, settings

from ..base.models import EntitySyncCount, SyncResult
from ..base.types import RawEntityRecord, SyncStateUpdate
from .auth.models import QboAuthState
from .auth.service import QuickBooksAuthService
from .data_service import QuickBooksDataService
from .repository import QboSyncRepository
from .transform import entity_id, is_deleted, parse_timestamp, to_web_transaction

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000

REQUIRED_SYNC_SETTINGS = (
    "EZCR_TENANT_ID",
    "QBO_REALM_ID",
    "QBO_REFRESH_TOKEN",
    "QBO_CLIENT_ID",
    "QBO_CLIENT_SECRET",
)


class SyncOrchestrator:
    """Full and incremental (CDC) QuickBooks sync for one tenant and realm."""

    def __init__(
        self,
        db: Prisma,
        config: Optional[Settings] = None,
        auth_service: Optional[QuickBooksAuthService] = None,
        data_service: Optional[QuickBooksDataService] = None,
        repository: Optional[QboSyncRepository] = None,
    ):
        self.db = db
        self.config = config or settings
        self.auth_service = auth_service or QuickBooksAuthService(self.config)
        self.data_service = data_service or QuickBooksDataService(self.config)
        self.repository = repository or QboSyncRepository(db)

    async def sync_full(
        self, entities_csv: Optional[str] = None, page_size: int = PAGE_SIZE
    ) -> SyncResult:
        """
        Re-fetch every entity of each configured type through the query endpoint.

        Entity types and pages are processed one at a time. A full sync only sees
        entities that still exist, so every raw row is written with deleted=False.

        Args:
            entities_csv: Comma-separated entity types overriding QBO_ENTITIES
            page_size: MAXRESULTS per query page

        Returns:
            SyncResult with per-entity counts and the new full-sync watermark
        """
        tenant_id, realm_id = self._require_sync_settings()
        entities = self.config.entity_list(entities_csv)
        start_time = time.time()

        auth_state = await self.auth_service.get_auth_state()

        logger.info(
            f"Full sync start: tenant={tenant_id} realm={realm_id} "
            f"entities={','.join(entities)}"
        )

        result = SyncResult(mode="full", tenant_id=tenant_id, realm_id=realm_id)

        for entity in entities:
            counts = EntitySyncCount(entity_type=entity)
            result.entities.append(counts)
            start_position = 1

            while True:
                items = await self.data_service.query_entities(
                    auth_state, entity, start_position, page_size
                )
                counts.pages += 1
                logger.info(
                    f"{entity}: fetched {len(items)} at start={start_position}"
                )
                if not items:
                    break

                for payload in items:
                    await self._upsert_item(
                        tenant_id, auth_state, entity, payload, False, counts
                    )

                if len(items) < page_size:
                    break
                start_position += page_size

        watermark = datetime.now(timezone.utc)
        await self.repository.upsert_sync_state(
            SyncStateUpdate(
                tenant_id=tenant_id, realm_id=realm_id, last_full_sync_at=watermark
            )
        )

        result.watermark = watermark
        result.duration_seconds = time.time() - start_time
        logger.info(
            f"Full sync complete: {result.count} entities upserted "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    async def sync_cdc(
        self,
        since: Optional[datetime] = None,
        entities_csv: Optional[str] = None,
    ) -> SyncResult:
        """
        Pull entities changed since a watermark in one change data capture call.

        The new watermark is the wall-clock time the call returned, not the latest
        timestamp observed in the response.

        Args:
            since: Explicit start overriding the persisted watermark
            entities_csv: Comma-separated entity types overriding QBO_ENTITIES

        Returns:
            SyncResult with per-entity counts and the new CDC watermark
        """
        tenant_id, realm_id = self._require_sync_settings()
        entities = self.config.entity_list(entities_csv)
        start_time = time.time()

        auth_state = await self.auth_service.get_auth_state()
        changed_since = await self.resolve_since(tenant_id, realm_id, since)

        logger.info(
            f"CDC sync start: tenant={tenant_id} realm={realm_id} "
            f"since={changed_since.isoformat()} entities={','.join(entities)}"
        )

        result = SyncResult(
            mode="cdc", tenant_id=tenant_id, realm_id=realm_id, since=changed_since
        )

        batch = await self.data_service.change_data_capture(
            auth_state, entities, changed_since
        )
        # Moment the CDC response arrived, before any item is written
        watermark = datetime.now(timezone.utc)

        for entity in entities:
            items = batch.get(entity, [])
            counts = EntitySyncCount(entity_type=entity, pages=1)
            result.entities.append(counts)
            logger.info(f"CDC {entity}: {len(items)} changed")

            for payload in items:
                await self._upsert_item(
                    tenant_id, auth_state, entity, payload, is_deleted(payload), counts
                )

        await self.repository.upsert_sync_state(
            SyncStateUpdate(
                tenant_id=tenant_id, realm_id=realm_id, last_cdc_time=watermark
            )
        )

        result.watermark = watermark
        result.duration_seconds = time.time() - start_time
        logger.info(
            f"CDC sync complete: {result.count} entities upserted "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    async def resolve_since(
        self, tenant_id: str, realm_id: str, since: Optional[datetime] = None
    ) -> datetime:
        """Explicit override, else persisted last_cdc_time, else the lookback."""
        if since is not None:
            return _ensure_utc(since)

        state = await self.repository.get_sync_state(tenant_id, realm_id)
        if state.last_cdc_time is not None:
            return _ensure_utc(state.last_cdc_time)

        return datetime.now(timezone.utc) - timedelta(
            days=self.config.QBO_CDC_LOOKBACK_DAYS
        )

    async def _upsert_item(
        self,
        tenant_id: str,
        auth_state: QboAuthState,
        entity: str,
        payload: Any,
        deleted: bool,
        counts: EntitySyncCount,
    ) -> None:
        """Write one item to the raw mirror and the normalized tables."""
        counts.fetched += 1
        item_id = entity_id(payload)
        if item_id is None:
            logger.warning(f"Skipping {entity} item without an Id")
            counts.skipped += 1
            return

        metadata = payload.get("MetaData")
        sync_token = payload.get("SyncToken")
        await self.repository.upsert_raw_entity(
            RawEntityRecord(
                tenant_id=tenant_id,
                realm_id=auth_state.realm_id,
                entity_type=entity,
                entity_id=item_id,
                sync_token=str(sync_token) if sync_token is not None else None,
                last_updated_time=parse_timestamp(
                    metadata.get("LastUpdatedTime")
                    if isinstance(metadata, dict)
                    else None
                ),
                deleted=deleted,
                payload=payload,
            )
        )

        web_transaction = to_web_transaction(tenant_id, entity, payload)
        if web_transaction is not None:
            await self.repository.upsert_web_transaction(
                auth_state.realm_id, web_transaction
            )

        counts.upserted += 1
        if deleted:
            counts.deleted += 1

    def _require_sync_settings(self) -> tuple[str, str]:
        self.config.require(*REQUIRED_SYNC_SETTINGS)
        return str(self.config.EZCR_TENANT_ID), str(self.config.QBO_REALM_ID)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
