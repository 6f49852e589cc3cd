"""QuickBooks Online API type definitions."""

from typing import Any, Dict, List

# QBO JSON documents are heterogeneous per entity; they are kept as dicts
QboPayload = Dict[str, Any]
QboApiResponse = Dict[str, Any]
# Entity blocks may hold malformed entries; consumers skip anything without an Id
QboEntityBatch = Dict[str, List[Any]]

QBO_BASE_URLS = {
    "production": "https://quickbooks.api.intuit.com",
    "sandbox": "https://sandbox-quickbooks.api.intuit.com",
}

# Line detail shapes, in lookup order
LINE_DETAIL_KEYS = (
    "SalesItemLineDetail",
    "ItemBasedExpenseLineDetail",
    "AccountBasedExpenseLineDetail",
)
