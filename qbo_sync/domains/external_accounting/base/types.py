"""Provider-agnostic type definitions for mirrored accounting data."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

# Raw provider payloads are stored verbatim as JSON documents
ProviderPayload = dict[str, Any]

WEB_TRANSACTION_SOURCE = "qbo"


class TransactionClassification(str, Enum):
    """Lifecycle classification derived from a provider payload."""

    VOID = "VOID"
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"
    UNKNOWN = "UNKNOWN"


class WebTransactionLine(BaseModel):
    """Flattened line item of a normalized transaction."""

    line_num: int = Field(..., description="1-based position in the source payload")
    item_ref: Optional[str] = Field(None, description="Provider item reference")
    item_name: Optional[str] = Field(None, description="Provider item name")
    description: Optional[str] = Field(None, description="Line description")
    quantity: Optional[Decimal] = Field(None, description="Quantity")
    unit_price: Optional[Decimal] = Field(None, description="Price per unit")
    line_amount: Optional[Decimal] = Field(None, description="Total line amount")
    payload: Any = Field(None, description="Raw line payload")


class WebTransaction(BaseModel):
    """Normalized, provider-agnostic financial transaction."""

    tenant_id: str = Field(..., description="Internal tenant identifier")
    source: str = Field(WEB_TRANSACTION_SOURCE, description="Upstream platform")
    entity_type: str = Field(..., description="Provider entity type")
    entity_id: str = Field(..., description="Provider entity identifier")
    txn_date: Optional[date] = Field(None, description="Transaction date")
    doc_number: Optional[str] = Field(None, description="Document number")
    customer_ref: Optional[str] = Field(None, description="Customer reference")
    customer_name: Optional[str] = Field(None, description="Customer display name")
    total_amount: Optional[Decimal] = Field(None, description="Total amount")
    currency: Optional[str] = Field(None, description="Currency code")
    status: Optional[str] = Field(None, description="Derived status")
    payload: ProviderPayload = Field(..., description="Raw provider payload")
    lines: List[WebTransactionLine] = Field(default_factory=list)


class RawEntityRecord(BaseModel):
    """Verbatim copy of one provider entity."""

    tenant_id: str
    realm_id: str
    entity_type: str
    entity_id: str
    sync_token: Optional[str] = None
    last_updated_time: Optional[datetime] = None
    deleted: bool = False
    payload: ProviderPayload


class SyncStateUpdate(BaseModel):
    """Watermark write; unset fields leave the stored value untouched."""

    tenant_id: str
    realm_id: str
    last_cdc_time: Optional[datetime] = None
    last_full_sync_at: Optional[datetime] = None
