from fastapi import FastAPI

from qbo_sync.core.logging_config import configure_logging
from qbo_sync.core.settings import settings
from qbo_sync.domains.external_accounting.quickbooks.auth.routes import (
    router as qbo_auth_router,
)

configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="QuickBooks Sync",
    description="OAuth callback surface for the QuickBooks Online sync engine",
    version="0.1.0",
)

# Include routers
app.include_router(qbo_auth_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
