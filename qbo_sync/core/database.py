from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from prisma import Prisma

from qbo_sync.core.settings import settings


def build_datasource_url(url: str, connection_limit: int) -> str:
    """Append a connection_limit to the datasource URL unless one is set."""
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query))
    query.setdefault("connection_limit", str(connection_limit))
    return urlunsplit(parts._replace(query=urlencode(query)))


def create_client() -> Prisma:
    """Create a Prisma client with a bounded connection pool.

    No statement timeout is configured, so a stuck query blocks the run.
    """
    settings.require("DATABASE_URL")
    url = build_datasource_url(
        str(settings.DATABASE_URL), settings.DB_CONNECTION_LIMIT
    )
    return Prisma(datasource={"url": url})
