# qbo_sync/shared/exceptions.py
from typing import Optional

from fastapi import HTTPException, status


# Configuration Exceptions
class ConfigurationError(HTTPException):
    def __init__(self, message: str = "Required configuration is missing") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
        )


# Integration Exceptions
class IntegrationConnectionError(HTTPException):
    def __init__(self, message: str = "Integration connection failed") -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)


class IntegrationAuthenticationError(HTTPException):
    def __init__(
        self,
        message: str = "Integration authentication failed",
        upstream_status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)
        self.upstream_status_code = upstream_status_code
        self.response_body = response_body


class IntegrationTokenExpiredError(IntegrationAuthenticationError):
    def __init__(
        self,
        message: str = "Integration token has expired",
        upstream_status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(message, upstream_status_code, response_body)


class QboApiError(IntegrationConnectionError):
    """A QuickBooks API call returned a non-2xx response."""

    def __init__(self, message: str, upstream_status_code: int, response_body: str):
        super().__init__(message)
        self.upstream_status_code = upstream_status_code
        self.response_body = response_body
