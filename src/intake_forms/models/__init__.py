"""Typed models for rule tables, codes, and SDK results."""

from intake_forms.models.codes import (
    ErrorKind,
    FormType,
    MedicalCondition,
    MedicationClass,
    OutcomeStatus,
    PendingStage,
    SessionState,
)
from intake_forms.models.schema import (
    AssessmentDefinition,
    FieldDefinition,
    FieldRule,
    FormDefinition,
    GroupCheck,
    Medication,
)
from intake_forms.models.submission import (
    AssessmentCheck,
    AssessmentScore,
    DispatchOutcome,
    DrainReport,
    FieldCheck,
    FieldIssue,
    NotificationResult,
    PatientSession,
    PendingSubmission,
    ValidationResult,
)

__all__ = [
    # Codes
    "ErrorKind",
    "FormType",
    "MedicalCondition",
    "MedicationClass",
    "OutcomeStatus",
    "PendingStage",
    "SessionState",
    # Rule tables
    "AssessmentDefinition",
    "FieldDefinition",
    "FieldRule",
    "FormDefinition",
    "GroupCheck",
    "Medication",
    # Results & state
    "AssessmentCheck",
    "AssessmentScore",
    "DispatchOutcome",
    "DrainReport",
    "FieldCheck",
    "FieldIssue",
    "NotificationResult",
    "PatientSession",
    "PendingSubmission",
    "ValidationResult",
]
