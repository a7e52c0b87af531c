"""Database configuration for the intake tables.

The connection comes from ``DATABASE_URL`` when set, otherwise from the
``PG_HOST`` / ``PG_PORT`` / ``PG_USER`` / ``PG_PASSWORD`` / ``PG_DATABASE``
parts.  The runtime engine uses asyncpg; Alembic gets the plain
``postgresql://`` form.
"""

import os
import re

_ASYNC_PREFIX = "postgresql+asyncpg://"
_SYNC_PREFIX = "postgresql://"


def _url_from_parts() -> str:
    user = os.getenv("PG_USER", "intake")
    password = os.getenv("PG_PASSWORD", "intake")
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    database = os.getenv("PG_DATABASE", "intake")
    return f"{_SYNC_PREFIX}{user}:{password}@{host}:{port}/{database}"


def _base_url() -> str:
    return os.getenv("DATABASE_URL") or _url_from_parts()


def get_sync_url() -> str:
    """Driver-less URL for Alembic's synchronous migration runner."""
    return _base_url().replace(_ASYNC_PREFIX, _SYNC_PREFIX, 1)


def get_async_url() -> str:
    """asyncpg URL for the runtime engine."""
    url = _base_url()
    if url.startswith(_SYNC_PREFIX):
        return url.replace(_SYNC_PREFIX, _ASYNC_PREFIX, 1)
    return url


def redact_url(url: str) -> str:
    """Hide the password so the URL can be logged."""
    return re.sub(r"(://[^:/@]+):[^@]*@", r"\1:***@", url)


# Pool tuning, overridable via PG_POOL_SIZE / PG_MAX_OVERFLOW
POOL_SIZE = int(os.getenv("PG_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("PG_MAX_OVERFLOW", "10"))
