"""Result and state models — the contract between the SDK and its callers.

These models are what the validators, queue, session manager, and
orchestrator hand back.  They are intentionally decoupled from the ORM
models in ``intake_db`` so API consumers never see database internals.

Persisted local state (the patient session and the pending-submission
list) round-trips through ``model_dump(mode="json")`` /
``model_validate``.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from intake_forms.models.codes import (
    ErrorKind,
    FormType,
    OutcomeStatus,
    PendingStage,
    SessionState,
)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class FieldCheck(BaseModel):
    """Outcome of a single validator call."""

    is_valid: bool
    message: str = ""
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls) -> "FieldCheck":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "FieldCheck":
        return cls(is_valid=False, kind=kind, message=message)


class FieldIssue(BaseModel):
    field: str
    kind: ErrorKind
    message: str
    section: str | None = None


class ValidationResult(BaseModel):
    """Aggregate of every field check for one form.

    ``errors`` maps field name -> message for UI display; ``issues`` keeps
    the error kind and section for each entry.  The first invalid
    field/section follow the form's section order so the UI can scroll
    to the topmost problem.
    """

    form_type: FormType
    is_valid: bool
    errors: dict[str, str] = Field(default_factory=dict)
    issues: list[FieldIssue] = Field(default_factory=list)
    first_invalid_field: str | None = None
    first_invalid_section: str | None = None
    # 1-based, assessment forms only
    unanswered_questions: list[int] = Field(default_factory=list)

    def kind_of(self, field_name: str) -> ErrorKind | None:
        for issue in self.issues:
            if issue.field == field_name:
                return issue.kind
        return None


class AssessmentCheck(BaseModel):
    is_valid: bool
    error: str = ""
    unanswered_questions: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class AssessmentScore(BaseModel):
    assessment: str
    total_score: int
    max_score: int
    severity: str


# ---------------------------------------------------------------------------
# Session & queue state (persisted locally as JSON)
# ---------------------------------------------------------------------------

class PatientSession(BaseModel):
    """Per-device pseudo-identity tying form submissions together."""

    temporary_id: str
    remote_record_id: str | None = None
    patient_id: str | None = None
    is_converted: bool = False
    state: SessionState = SessionState.LOCAL_ONLY
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PendingSubmission(BaseModel):
    """A submission that could not be completed online."""

    id: str
    form_type: FormType
    form_data: dict
    timestamp: datetime
    retry_count: int = 0
    # Idempotency key carried into the remote record
    submission_id: str
    stage: PendingStage = PendingStage.FULL


class DrainReport(BaseModel):
    """What one pass over the offline queue achieved."""

    online: bool
    delivered: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    # Entries whose retry count reached the alert threshold on this pass
    alerted: list[str] = Field(default_factory=list)
    remaining: int = 0


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class NetworkState(BaseModel):
    """Link-layer connectivity and actual internet reachability."""

    is_connected: bool
    is_internet_reachable: bool

    @property
    def is_online(self) -> bool:
        return self.is_connected and self.is_internet_reachable


class NotificationResult(BaseModel):
    success: bool
    fallback: bool = False
    error: str | None = None


class DispatchOutcome(BaseModel):
    """Independent success flags for the email and record channels.

    ``record_required`` is false for email-only forms (contact requests),
    whose success depends on the email alone.
    """

    form_type: FormType
    submission_id: str
    email_sent: bool
    record_saved: bool
    record_required: bool = True
    queued: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.email_sent and (self.record_saved or not self.record_required)

    @property
    def status(self) -> OutcomeStatus:
        if self.success:
            return OutcomeStatus.SUCCESS
        if self.email_sent or self.record_saved:
            return OutcomeStatus.PARTIAL
        return OutcomeStatus.FAILED
