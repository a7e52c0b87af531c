"""Intake constants shared across the SDK.

These values are referenced by the validators, offline queue, session
manager, and orchestrator.  They mirror conventions encoded in the YAML
rule tables under ``rulesets/v1/``.

Several constants can be overridden via environment variables so that
deployments can adjust behaviour without code changes.
"""

import os

# Local key-value store keys.  The pending list and session id live at
# fixed keys; form snapshots are namespaced by form type.
PENDING_SUBMISSIONS_KEY = "pending_form_submissions"
SESSION_KEY = "patient_session_id"
SNAPSHOT_PREFIX = "offline_form_data_"

# Temporary session ids look like TMP_<epoch-ms>_<6 base36 chars>.
TEMP_ID_PREFIX = "TMP"
TEMP_ID_SUFFIX_LENGTH = 6

# A pending submission is reported to the user once its retry count
# reaches this value.  Entries are never discarded.
# Overridable via INTAKE_RETRY_ALERT_THRESHOLD env var.
RETRY_ALERT_THRESHOLD = int(os.getenv("INTAKE_RETRY_ALERT_THRESHOLD", "3"))

# Age limits enforced by the age and date-of-birth checks.
MIN_AGE = 1
MAX_AGE = 120

# Rejected for the patient-intake email field only.
DISPOSABLE_EMAIL_DOMAINS: frozenset[str] = frozenset(
    {"tempmail.com", "throwawaymail.com", "mailinator.com"}
)

# Remote tables touched by session identity and conversion.
SESSIONS_TABLE = "patient_sessions"
PATIENTS_TABLE = "patients"
