"""
Transforms from QuickBooks payloads to normalized web transactions.

The raw payload is always stored verbatim; these transforms are queryable
rollups and must never raise on malformed input.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from ..base.types import (
    TransactionClassification,
    WebTransaction,
    WebTransactionLine,
)
from .types import LINE_DETAIL_KEYS, QboPayload

VOID_MARKER = "VOID"
DELETED_MARKER = "DELETED"


def safe_number(value: Any) -> Optional[Decimal]:
    """Parse a numeric value, returning None for missing or non-finite input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _ref(payload: Any, key: str, attr: str) -> Optional[str]:
    ref = payload.get(key) if isinstance(payload, dict) else None
    return _text(ref.get(attr)) if isinstance(ref, dict) else None


def entity_id(payload: Any) -> Optional[str]:
    """Return the entity id as a string, or None if the payload has none."""
    if not isinstance(payload, dict):
        return None
    return _text(payload.get("Id")) or None


def parse_txn_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a QBO ISO-8601 timestamp such as ``2024-03-01T10:33:39-08:00``."""
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def deletion_status(payload: Any) -> Optional[str]:
    """Status-like marker a CDC item may carry, from the first field present."""
    if not isinstance(payload, dict):
        return None
    metadata = payload.get("MetaData")
    for candidate in (
        payload.get("status"),
        payload.get("Status"),
        metadata.get("status") if isinstance(metadata, dict) else None,
    ):
        if candidate is not None:
            return candidate if isinstance(candidate, str) else None
    return None


def is_deleted(payload: Any) -> bool:
    """
    Heuristic deletion check for change feed items.

    Assumes QBO marks deletions with a ``DELETED`` status; this has not been
    confirmed against documented behaviour.
    """
    status = deletion_status(payload)
    return status is not None and status.upper() == DELETED_MARKER


def classify_transaction(payload: Any) -> TransactionClassification:
    """Classify a payload as void, deleted, active or unknown."""
    if not isinstance(payload, dict):
        return TransactionClassification.UNKNOWN

    # Case-sensitive, as QBO users type it into the private note
    private_note = payload.get("PrivateNote")
    if isinstance(private_note, str) and VOID_MARKER in private_note:
        return TransactionClassification.VOID

    if is_deleted(payload):
        return TransactionClassification.DELETED

    if _structured_status(payload) is not None:
        return TransactionClassification.ACTIVE

    return TransactionClassification.UNKNOWN


def _structured_status(payload: QboPayload) -> Optional[str]:
    return _text(payload.get("TxnStatus")) or _text(payload.get("status"))


def derive_status(payload: Any) -> Optional[str]:
    """Status column value; the VOID classification overrides structured fields."""
    classification = classify_transaction(payload)
    if classification is TransactionClassification.VOID:
        return VOID_MARKER
    if not isinstance(payload, dict):
        return None
    return _structured_status(payload)


def _line_detail(line: QboPayload) -> QboPayload:
    for key in LINE_DETAIL_KEYS:
        detail = line.get(key)
        if isinstance(detail, dict):
            return detail
    return {}


def to_web_lines(payload: QboPayload) -> List[WebTransactionLine]:
    raw_lines = payload.get("Line")
    if not isinstance(raw_lines, list):
        return []

    lines = []
    for index, line in enumerate(raw_lines):
        if not isinstance(line, dict):
            line = {}
        detail = _line_detail(line)
        quantity = detail.get("Qty")
        if quantity is None:
            quantity = detail.get("Quantity")

        lines.append(
            WebTransactionLine(
                line_num=index + 1,
                item_ref=_ref(detail, "ItemRef", "value")
                or _ref(detail, "AccountRef", "value"),
                item_name=_ref(detail, "ItemRef", "name")
                or _ref(detail, "AccountRef", "name"),
                description=_text(line.get("Description")),
                quantity=safe_number(quantity),
                unit_price=safe_number(detail.get("UnitPrice")),
                line_amount=safe_number(line.get("Amount")),
                payload=line,
            )
        )
    return lines


def to_web_transaction(
    tenant_id: str, entity_type: str, payload: Any
) -> Optional[WebTransaction]:
    """
    Map a QBO entity payload to a normalized web transaction.

    Returns None when the payload carries no id.
    """
    transaction_id = entity_id(payload)
    if transaction_id is None:
        return None

    total = payload.get("TotalAmt")
    if isinstance(total, dict):
        total = total.get("value")

    return WebTransaction(
        tenant_id=tenant_id,
        entity_type=entity_type,
        entity_id=transaction_id,
        txn_date=parse_txn_date(payload.get("TxnDate")),
        doc_number=_text(payload.get("DocNumber")),
        customer_ref=_ref(payload, "CustomerRef", "value"),
        customer_name=_ref(payload, "CustomerRef", "name"),
        total_amount=safe_number(total),
        currency=_ref(payload, "CurrencyRef", "value"),
        status=derive_status(payload),
        payload=payload,
        lines=to_web_lines(payload),
    )
