"""SDK configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  The Resend API
key has no default: without it the email channel reports failure on every
submission while the record channel keeps working.
"""

import os
from dataclasses import dataclass

from intake_forms.connectivity import DEFAULT_PROBE_URL
from intake_forms.constants import RETRY_ALERT_THRESHOLD

DEFAULT_RESEND_API_URL = "https://api.resend.com/emails"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class IntakeSettings:
    """Immutable SDK configuration read from environment at startup."""

    # Local state (session id, pending queue, form snapshots)
    state_path: str = "~/.intake/state.json"

    # Seconds the submit call waits before returning its receipt
    optimistic_delay: float = 1.0

    # Connectivity pre-flight
    probe_url: str = DEFAULT_PROBE_URL
    probe_timeout: float = 3.0

    # Re-queue record writes that failed while online as record-only entries
    requeue_failed_writes: bool = True

    # Background queue retrier
    retry_interval: float = 60.0
    retry_alert_threshold: int = RETRY_ALERT_THRESHOLD

    # Email delivery via the Resend HTTP API
    resend_api_key: str | None = None
    resend_api_url: str = DEFAULT_RESEND_API_URL
    admin_email: str = "intake@localhost"
    sender_name: str = "TMS of Emerald Coast"
    sender_email: str = "onboarding@resend.dev"
    email_timeout: float = 15.0


def load_settings() -> IntakeSettings:
    """Build settings from ``INTAKE_*`` and ``RESEND_*`` environment variables."""
    return IntakeSettings(
        state_path=os.getenv("INTAKE_STATE_PATH", "~/.intake/state.json"),
        optimistic_delay=float(os.getenv("INTAKE_OPTIMISTIC_DELAY", "1.0")),
        probe_url=os.getenv("INTAKE_PROBE_URL", DEFAULT_PROBE_URL),
        probe_timeout=float(os.getenv("INTAKE_PROBE_TIMEOUT", "3.0")),
        requeue_failed_writes=_env_bool("INTAKE_REQUEUE_FAILED_WRITES", True),
        retry_interval=float(os.getenv("INTAKE_RETRY_INTERVAL", "60")),
        retry_alert_threshold=RETRY_ALERT_THRESHOLD,
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        resend_api_url=os.getenv("RESEND_API_URL", DEFAULT_RESEND_API_URL),
        admin_email=os.getenv("INTAKE_ADMIN_EMAIL", "intake@localhost"),
        sender_name=os.getenv("INTAKE_SENDER_NAME", "TMS of Emerald Coast"),
        sender_email=os.getenv("INTAKE_SENDER_EMAIL", "onboarding@resend.dev"),
        email_timeout=float(os.getenv("INTAKE_EMAIL_TIMEOUT", "15")),
    )
