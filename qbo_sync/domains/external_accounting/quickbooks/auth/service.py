# qbo_sync/domains/external_accounting/quickbooks/auth/service.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx

from qbo_sync.core.settings import Settings, settings
from qbo_sync.shared.exceptions import (
    IntegrationAuthenticationError,
    IntegrationConnectionError,
    IntegrationTokenExpiredError,
)

from .models import QboAuthState, QboTokenExchangeResult, QboTokenResponse

logger = logging.getLogger(__name__)

AUTH_BASE_URL = "https://appcenter.intuit.com/connect/oauth2"
TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
SCOPES = " ".join(
    [
        "com.intuit.quickbooks.accounting",
        "openid",
        "profile",
        "email",
    ]
)


class QuickBooksAuthService:
    """Service for the QuickBooks OAuth2 authorization-code and refresh grants."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.auth_url = AUTH_BASE_URL
        self.token_url = TOKEN_URL
        self.scopes = SCOPES

    def build_authorization_url(self) -> str:
        """
        Build the Intuit consent URL.

        Returns:
            Authorization URL requesting accounting and identity scopes

        Raises:
            ConfigurationError: If client id or redirect URI are not set
        """
        self.config.require("QBO_CLIENT_ID", "QBO_REDIRECT_URI")

        auth_params = {
            "client_id": self.config.QBO_CLIENT_ID,
            "scope": self.scopes,
            "redirect_uri": self.config.QBO_REDIRECT_URI,
            "response_type": "code",
            "state": self.config.QBO_OAUTH_STATE,
        }

        return f"{self.auth_url}?{urlencode(auth_params)}"

    async def exchange_authorization_code(
        self, code: str, realm_id: str
    ) -> QboTokenExchangeResult:
        """
        Exchange a one-time authorization code for tokens.

        Args:
            code: Authorization code from the consent redirect
            realm_id: Company id from the consent redirect

        Returns:
            The realm id together with the raw token response

        Raises:
            IntegrationAuthenticationError: On any non-2xx token response
            IntegrationConnectionError: If the token endpoint is unreachable
        """
        self.config.require("QBO_CLIENT_ID", "QBO_CLIENT_SECRET", "QBO_REDIRECT_URI")

        token_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.QBO_REDIRECT_URI,
        }

        response = await self._post_token_request(token_data)
        if response.status_code >= 300:
            raise IntegrationAuthenticationError(
                f"Token exchange failed: {response.status_code} {response.text}",
                upstream_status_code=response.status_code,
                response_body=response.text,
            )

        return QboTokenExchangeResult(realm_id=realm_id, token=response.json())

    async def refresh_access_token(
        self, refresh_token: str, realm_id: str = ""
    ) -> QboAuthState:
        """
        Exchange the long-lived refresh token for a fresh access token.

        Called on every run; nothing is cached between runs. Intuit may rotate
        the refresh token, in which case the new value must be stored in
        QBO_REFRESH_TOKEN before the old one is invalidated.

        Raises:
            IntegrationTokenExpiredError: On any non-2xx token response
            IntegrationConnectionError: If the token endpoint is unreachable
        """
        self.config.require("QBO_CLIENT_ID", "QBO_CLIENT_SECRET")

        refresh_data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        response = await self._post_token_request(refresh_data)
        if response.status_code >= 300:
            raise IntegrationTokenExpiredError(
                f"Refresh failed: {response.status_code} {response.text}",
                upstream_status_code=response.status_code,
                response_body=response.text,
            )

        token_response = QboTokenResponse(**response.json())
        new_refresh_token = token_response.refresh_token or refresh_token
        rotated = new_refresh_token != refresh_token

        if rotated:
            logger.warning(
                "QuickBooks rotated the refresh token for realm "
                f"{realm_id or '<unknown>'}. Persist the new value in "
                "QBO_REFRESH_TOKEN before the next run; the previous token "
                "will stop working once Intuit invalidates it."
            )

        return QboAuthState(
            access_token=token_response.access_token,
            refresh_token=new_refresh_token,
            realm_id=realm_id,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=token_response.expires_in),
            rotated=rotated,
        )

    async def get_auth_state(self) -> QboAuthState:
        """Refresh credentials for the configured realm."""
        self.config.require("QBO_REFRESH_TOKEN", "QBO_REALM_ID")
        return await self.refresh_access_token(
            str(self.config.QBO_REFRESH_TOKEN), str(self.config.QBO_REALM_ID)
        )

    async def _post_token_request(self, data: dict[str, str]) -> httpx.Response:
        """POST a grant to the token endpoint with HTTP Basic client auth."""
        async with httpx.AsyncClient(timeout=None) as client:
            try:
                return await client.post(
                    self.token_url,
                    data=data,
                    auth=(
                        str(self.config.QBO_CLIENT_ID),
                        str(self.config.QBO_CLIENT_SECRET),
                    ),
                    headers={
                        "Content-Type": "application/x-www-form-urlencoded",
                        "Accept": "application/json",
                    },
                )
            except httpx.RequestError as e:
                raise IntegrationConnectionError(f"Token request failed: {e}")
