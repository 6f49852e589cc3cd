import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from qbo_sync.core.settings import Settings, settings
from qbo_sync.shared.exceptions import (
    ConfigurationError,
    IntegrationConnectionError,
    QboApiError,
)

from .auth.models import QboAuthState
from .types import QBO_BASE_URLS, QboApiResponse, QboEntityBatch

logger = logging.getLogger(__name__)


def _as_item_list(block: Any) -> List[Any]:
    """
    Normalize an entity block that may be a list, a lone object or missing.

    Malformed entries are kept so that page lengths match what QBO returned;
    the orchestrator skips them.
    """
    if isinstance(block, list):
        return list(block)
    if isinstance(block, dict):
        return [block]
    return []


def _dict_blocks(block: Any) -> List[QboApiResponse]:
    """Response wrapper objects only, ignoring anything that is not a mapping."""
    return [item for item in _as_item_list(block) if isinstance(item, dict)]


class QuickBooksDataService:
    """QuickBooks Online REST client for query and change data capture reads."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        environment = self.config.QBO_ENVIRONMENT.lower()
        if environment not in QBO_BASE_URLS:
            raise ConfigurationError(
                f"Unknown QBO_ENVIRONMENT '{self.config.QBO_ENVIRONMENT}'"
            )
        self.base_url = QBO_BASE_URLS[environment]

    async def authenticated_get(
        self,
        path: str,
        auth_state: QboAuthState,
        params: Optional[Dict[str, str]] = None,
    ) -> QboApiResponse:
        """
        Make an authenticated GET request against the QuickBooks API.

        A ``minorversion`` parameter is added unless the caller supplied one.
        No retry is attempted; retries belong to whatever scheduled the run.

        Args:
            path: Path below the API base URL, starting with ``/v3``
            auth_state: Credentials from the token refresh
            params: Extra query parameters

        Returns:
            Decoded JSON response

        Raises:
            QboApiError: For any non-2xx response, with status and body attached
            IntegrationConnectionError: For transport failures
        """
        query_params = dict(params or {})
        if "minorversion" not in query_params and "minorversion=" not in path:
            query_params["minorversion"] = self.config.QBO_MINOR_VERSION

        headers = {
            "Authorization": f"Bearer {auth_state.access_token}",
            "Accept": "application/json",
        }

        async with httpx.AsyncClient(timeout=None) as client:
            try:
                response = await client.get(
                    f"{self.base_url}{path}", params=query_params, headers=headers
                )
            except httpx.RequestError as e:
                raise IntegrationConnectionError(f"QBO request error: {e}")

        if response.status_code >= 300:
            raise QboApiError(
                f"QBO GET {path} failed: {response.status_code} {response.text}",
                upstream_status_code=response.status_code,
                response_body=response.text,
            )

        return response.json()

    async def query_entities(
        self,
        auth_state: QboAuthState,
        entity: str,
        start_position: int,
        max_results: int,
    ) -> List[Any]:
        """Fetch one page of an entity through the query endpoint."""
        query = (
            f"SELECT * FROM {entity} "
            f"STARTPOSITION {start_position} MAXRESULTS {max_results}"
        )
        response = await self.authenticated_get(
            f"/v3/company/{quote(auth_state.realm_id, safe='')}/query",
            auth_state,
            params={"query": query},
        )

        query_response = response.get("QueryResponse")
        if not isinstance(query_response, dict):
            return []
        return _as_item_list(query_response.get(entity))

    async def change_data_capture(
        self,
        auth_state: QboAuthState,
        entities: List[str],
        changed_since: datetime,
    ) -> QboEntityBatch:
        """
        Fetch every entity of the given types changed since a timestamp.

        Returns:
            Items grouped by entity type; every requested type is present
        """
        response = await self.authenticated_get(
            f"/v3/company/{quote(auth_state.realm_id, safe='')}/cdc",
            auth_state,
            params={
                "entities": ",".join(entities),
                "changedSince": changed_since.isoformat(),
            },
        )
        return group_cdc_response(response, entities)


def group_cdc_response(response: QboApiResponse, entities: List[str]) -> QboEntityBatch:
    """
    Group a CDC response by entity type.

    Intuit documents ``CDCResponse`` as a list of ``QueryResponse`` lists, each
    holding one entity block. A flat ``CDCResponse.<Entity>`` mapping is also
    accepted.
    """
    grouped: QboEntityBatch = {entity: [] for entity in entities}
    cdc = response.get("CDCResponse") or {}

    if isinstance(cdc, dict):
        for entity in entities:
            grouped[entity].extend(_as_item_list(cdc.get(entity)))
        return grouped

    for cdc_block in _dict_blocks(cdc):
        for query_response in _dict_blocks(cdc_block.get("QueryResponse")):
            for entity in entities:
                grouped[entity].extend(_as_item_list(query_response.get(entity)))

    return grouped
