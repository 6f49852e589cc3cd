from pydantic_settings import BaseSettings, SettingsConfigDict

from qbo_sync.shared.exceptions import ConfigurationError

DEFAULT_ENTITIES = "Invoice,SalesReceipt,Payment,RefundReceipt,CreditMemo"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database configuration
    DATABASE_URL: str | None = None
    DB_CONNECTION_LIMIT: int = 5

    # QuickBooks OAuth configuration
    QBO_CLIENT_ID: str | None = None
    QBO_CLIENT_SECRET: str | None = None
    QBO_REDIRECT_URI: str | None = None
    QBO_REFRESH_TOKEN: str | None = None
    QBO_OAUTH_STATE: str = "qbo-sync"

    # QuickBooks company and API configuration
    QBO_REALM_ID: str | None = None
    QBO_ENVIRONMENT: str = "production"  # or "sandbox"
    QBO_MINOR_VERSION: str = "75"
    QBO_ENTITIES: str = DEFAULT_ENTITIES
    QBO_CDC_LOOKBACK_DAYS: int = 7

    # Internal tenant the mirrored rows belong to
    EZCR_TENANT_ID: str | None = None

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def require(self, *names: str) -> None:
        """Raise ConfigurationError naming every listed setting that is unset."""
        missing = [name for name in names if not getattr(self, name, None)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable(s): {', '.join(missing)}"
            )

    def entity_list(self, entities_csv: str | None = None) -> list[str]:
        """Split a comma-separated entity list, falling back to QBO_ENTITIES."""
        raw = entities_csv if entities_csv else self.QBO_ENTITIES
        return [entity.strip() for entity in raw.split(",") if entity.strip()]


settings = Settings()
