# qbo_sync/domains/external_accounting/quickbooks/auth/routes.py
import logging

from fastapi import APIRouter, Query, status
from fastapi.responses import RedirectResponse

from qbo_sync.core.settings import settings
from qbo_sync.shared.exceptions import IntegrationAuthenticationError

from .models import QboAuthUrlResponse, QboCallbackParams, QboCallbackResponse
from .service import QuickBooksAuthService

logger = logging.getLogger(__name__)

# Router for QuickBooks OAuth endpoints
router = APIRouter(prefix="/qbo/auth", tags=["QuickBooks"])


@router.get(
    "/url",
    response_model=QboAuthUrlResponse,
    operation_id="getQboAuthUrl",
)
async def get_qbo_auth_url() -> QboAuthUrlResponse:
    """Return the Intuit consent URL for the configured client."""
    service = QuickBooksAuthService()
    return QboAuthUrlResponse(auth_url=service.build_authorization_url())


@router.get("/connect", operation_id="startQboConnection")
async def start_qbo_connection() -> RedirectResponse:
    """Redirect the browser to the Intuit consent page."""
    return RedirectResponse(
        url=QuickBooksAuthService().build_authorization_url(),
        status_code=status.HTTP_302_FOUND,
    )


@router.get(
    "/callback",
    response_model=QboCallbackResponse,
    operation_id="qboOAuthCallback",
)
async def qbo_oauth_callback(
    code: str = Query(None, description="OAuth authorization code"),
    realmId: str = Query(None, description="QuickBooks company id"),
    state: str = Query(None, description="State echoed back by Intuit"),
    error: str = Query(None, description="OAuth error code"),
) -> QboCallbackResponse:
    """
    Handle the redirect from Intuit after consent.

    **No authentication required** - callback from external service

    The refresh token is not stored by this service; it is returned once so the
    operator can place it in QBO_REFRESH_TOKEN.

    Raises:
        HTTP 401: If consent failed, parameters are missing or the exchange fails
    """
    callback_params = QboCallbackParams(
        code=code, realmId=realmId, state=state, error=error
    )

    if callback_params.error:
        raise IntegrationAuthenticationError(
            f"OAuth authorization failed: {callback_params.error}"
        )

    if not callback_params.code or not callback_params.realmId:
        raise IntegrationAuthenticationError("Missing required OAuth parameters")

    if callback_params.state != settings.QBO_OAUTH_STATE:
        raise IntegrationAuthenticationError("Invalid OAuth state")

    service = QuickBooksAuthService()
    result = await service.exchange_authorization_code(
        callback_params.code, callback_params.realmId
    )

    logger.info(
        f"QuickBooks authorization code exchanged for realm {result.realm_id}"
    )

    return QboCallbackResponse(
        message="QuickBooks authorization code exchanged successfully",
        realm_id=result.realm_id,
        refresh_token=result.token.get("refresh_token"),
        access_token_expires_in=result.token.get("expires_in"),
        refresh_token_expires_in=result.token.get("x_refresh_token_expires_in"),
    )
