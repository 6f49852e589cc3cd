from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional

from prisma import Json, Prisma

from ..base.models import SyncState, SyncSummary
from ..base.types import (
    RawEntityRecord,
    SyncStateUpdate,
    WebTransaction,
    WebTransactionLine,
)


def _date_to_datetime(value: Optional[date]) -> Optional[datetime]:
    """Prisma maps @db.Date columns to datetime values."""
    if value is None:
        return None
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class QboSyncRepository:
    """Idempotent writes for the QuickBooks mirror tables."""

    def __init__(self, db: Prisma):
        self.db = db

    async def upsert_raw_entity(self, record: RawEntityRecord) -> None:
        """
        Upsert one raw entity row; the latest fetch always wins.

        The incoming sync token is not compared with the stored one because the
        mirror is not the system of record.
        """
        fetched_at = datetime.now(timezone.utc)
        values: Dict[str, Any] = {
            "syncToken": record.sync_token,
            "lastUpdatedTime": record.last_updated_time,
            "deleted": record.deleted,
            "payload": Json(record.payload),
            "fetchedAt": fetched_at,
        }

        await self.db.qboentityraw.upsert(
            where={
                "tenantId_realmId_entityType_entityId": {
                    "tenantId": record.tenant_id,
                    "realmId": record.realm_id,
                    "entityType": record.entity_type,
                    "entityId": record.entity_id,
                }
            },
            data={
                "create": {
                    "tenantId": record.tenant_id,
                    "realmId": record.realm_id,
                    "entityType": record.entity_type,
                    "entityId": record.entity_id,
                    **values,
                },
                "update": values,
            },
        )

    async def upsert_web_transaction(self, realm_id: str, txn: WebTransaction) -> None:
        """
        Upsert a transaction header and replace its full line set.

        Header upsert, line delete and line insert share one database
        transaction so a crash never leaves stale lines behind.
        """
        key = {
            "tenantId": txn.tenant_id,
            "source": txn.source,
            "qboEntityType": txn.entity_type,
            "qboEntityId": txn.entity_id,
        }
        header: Dict[str, Any] = {
            "realmId": realm_id,
            "txnDate": _date_to_datetime(txn.txn_date),
            "docNumber": txn.doc_number,
            "customerRef": txn.customer_ref,
            "customerName": txn.customer_name,
            "totalAmount": txn.total_amount,
            "currency": txn.currency,
            "status": txn.status,
            "payload": Json(txn.payload),
            "updatedAt": datetime.now(timezone.utc),
        }

        async with self.db.tx() as tx:
            await tx.webtransaction.upsert(
                where={"tenantId_source_qboEntityType_qboEntityId": key},
                data={"create": {**key, **header}, "update": header},
            )
            await tx.webtransactionline.delete_many(where=key)
            if txn.lines:
                await tx.webtransactionline.create_many(
                    data=[self._map_line_data(key, line) for line in txn.lines]
                )

    async def upsert_sync_state(self, update: SyncStateUpdate) -> None:
        """Upsert watermarks, leaving any watermark not supplied untouched."""
        changes: Dict[str, Any] = {}
        if update.last_cdc_time is not None:
            changes["lastCdcTime"] = update.last_cdc_time
        if update.last_full_sync_at is not None:
            changes["lastFullSyncAt"] = update.last_full_sync_at

        await self.db.qbosyncstate.upsert(
            where={
                "tenantId_realmId": {
                    "tenantId": update.tenant_id,
                    "realmId": update.realm_id,
                }
            },
            data={
                "create": {
                    "tenantId": update.tenant_id,
                    "realmId": update.realm_id,
                    **changes,
                },
                "update": {**changes, "updatedAt": datetime.now(timezone.utc)},
            },
        )

    async def get_sync_state(self, tenant_id: str, realm_id: str) -> SyncState:
        row = await self.db.qbosyncstate.find_unique(
            where={"tenantId_realmId": {"tenantId": tenant_id, "realmId": realm_id}}
        )
        return SyncState(
            tenant_id=tenant_id,
            realm_id=realm_id,
            last_cdc_time=row.lastCdcTime if row else None,
            last_full_sync_at=row.lastFullSyncAt if row else None,
        )

    async def get_sync_summary(self, tenant_id: str, realm_id: str) -> SyncSummary:
        """Count mirrored rows per entity type for the status report."""
        state = await self.get_sync_state(tenant_id, realm_id)
        scope = {"tenantId": tenant_id, "realmId": realm_id}

        raw_groups = await self.db.qboentityraw.group_by(
            by=["entityType"], where=scope, count=True
        )
        deleted_groups = await self.db.qboentityraw.group_by(
            by=["entityType"], where={**scope, "deleted": True}, count=True
        )
        web_groups = await self.db.webtransaction.group_by(
            by=["qboEntityType"], where=scope, count=True
        )

        return SyncSummary(
            state=state,
            raw_counts=_group_counts(raw_groups, "entityType"),
            deleted_counts=_group_counts(deleted_groups, "entityType"),
            web_transaction_counts=_group_counts(web_groups, "qboEntityType"),
        )

    def _map_line_data(
        self, key: Dict[str, str], line: WebTransactionLine
    ) -> Dict[str, Any]:
        """Map a normalized line to a line row."""
        return {
            **key,
            "lineNum": line.line_num,
            "itemRef": line.item_ref,
            "itemName": line.item_name,
            "description": line.description,
            "quantity": line.quantity,
            "unitPrice": line.unit_price,
            "lineAmount": line.line_amount,
            "payload": Json(line.payload),
        }


def _group_counts(groups: Any, field: str) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for group in groups:
        count = group.get("_count") or {}
        counts[str(group[field])] = int(count.get("_all", 0))
    return counts
