# qbo_sync/domains/external_accounting/quickbooks/auth/models.py
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class QboAuthUrlResponse(BaseModel):
    """Response model for OAuth authorization URL generation."""

    auth_url: str = Field(..., description="QuickBooks OAuth consent URL")


class QboCallbackParams(BaseModel):
    """Query parameters from the QuickBooks OAuth callback."""

    code: Optional[str] = Field(None, description="OAuth authorization code")
    realmId: Optional[str] = Field(None, description="QuickBooks company id")
    state: Optional[str] = Field(None, description="State echoed back by Intuit")
    error: Optional[str] = Field(None, description="Error code if consent failed")


class QboTokenResponse(BaseModel):
    """Response from the Intuit token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., description="Access token for API calls")
    refresh_token: Optional[str] = Field(
        None, description="Refresh token, possibly rotated"
    )
    expires_in: int = Field(3600, description="Access token lifetime in seconds")
    x_refresh_token_expires_in: Optional[int] = Field(
        None, description="Refresh token lifetime in seconds"
    )
    token_type: str = Field(default="bearer", description="Token type")


class QboTokenExchangeResult(BaseModel):
    """One-time authorization code exchange result."""

    realm_id: str = Field(..., description="QuickBooks company id")
    token: Dict[str, Any] = Field(..., description="Raw token endpoint response")


class QboAuthState(BaseModel):
    """Credentials for one sync run."""

    access_token: str
    refresh_token: str
    realm_id: str
    expires_at: datetime
    rotated: bool = False


class QboCallbackResponse(BaseModel):
    """Response model for a completed callback exchange."""

    message: str = Field(..., description="Outcome message")
    realm_id: str = Field(..., description="QuickBooks company id")
    refresh_token: Optional[str] = Field(
        None, description="Refresh token to store in QBO_REFRESH_TOKEN"
    )
    access_token_expires_in: Optional[int] = Field(
        None, description="Access token lifetime in seconds"
    )
    refresh_token_expires_in: Optional[int] = Field(
        None, description="Refresh token lifetime in seconds"
    )
