"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  SDK behaviour
(state file, email, retry cadence) is configured separately through
:func:`intake_forms.config.load_settings`.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS — comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Rule table directory (None → the v1/ tables shipped with intake_forms)
    ruleset_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # Run the offline-queue retrier inside the server process
    background_retry: bool = True


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        ruleset_dir=os.getenv("SERVER_RULESET_DIR") or None,
        log_level=(os.getenv("INTAKE_LOG_LEVEL") or os.getenv("SERVER_LOG_LEVEL", "INFO")).upper(),
        background_retry=os.getenv("SERVER_BACKGROUND_RETRY", "true").lower() in ("1", "true", "yes"),
    )
