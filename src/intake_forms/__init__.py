"""intake_forms — Rule-based intake form SDK for the TMS clinic.

Public API:
    SubmissionOrchestrator — validate, gate, and dispatch one form submission
    SubmissionReceipt      — accepted submission with its background outcome
    FormRuleStore          — loads YAML rule tables into typed models
    FormValidator          — generic validator driven by the rule tables
    RecordBuilder          — turns form fields into remote table rows
    PatientSessionManager  — per-device pseudo-identity and patient conversion
    OfflineQueue           — durable pending submissions and form snapshots

Collaborator ports and default implementations:
    KeyValueStore          — MemoryStore, JsonFileStore, Namespace
    ConnectivityService    — HttpConnectivityProbe, StaticConnectivity
    RemoteStore            — implemented by intake_db.SqlRemoteStore
    Notifier               — ResendEmailNotifier (with DocumentRenderer)

Scoring:
    score_assessment, calculate_total_score, classify_severity
"""

from intake_forms.config import IntakeSettings, load_settings
from intake_forms.connectivity import HttpConnectivityProbe, StaticConnectivity
from intake_forms.errors import (
    ConnectivityError,
    FormValidationError,
    IntakeError,
    NotificationError,
    RemoteStoreError,
    RulesetError,
    SessionError,
)
from intake_forms.form_validator import FormValidator
from intake_forms.interfaces import (
    ConnectivityService,
    KeyValueStore,
    Notifier,
    RemoteStore,
)
from intake_forms.models import (
    DispatchOutcome,
    DrainReport,
    ErrorKind,
    FormType,
    OutcomeStatus,
    PatientSession,
    PendingSubmission,
    SessionState,
    ValidationResult,
)
from intake_forms.notification import DocumentRenderer, ResendEmailNotifier
from intake_forms.offline_queue import OfflineQueue
from intake_forms.orchestrator import SubmissionOrchestrator, SubmissionReceipt
from intake_forms.records import RecordBuilder
from intake_forms.ruleset import FormRuleStore
from intake_forms.scoring import calculate_total_score, classify_severity, score_assessment
from intake_forms.session import PatientSessionManager
from intake_forms.storage import JsonFileStore, MemoryStore, Namespace

__all__ = [
    # Orchestration
    "SubmissionOrchestrator",
    "SubmissionReceipt",
    "FormRuleStore",
    "FormValidator",
    "RecordBuilder",
    "PatientSessionManager",
    "OfflineQueue",
    # Configuration
    "IntakeSettings",
    "load_settings",
    # Ports & implementations
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "Namespace",
    "ConnectivityService",
    "HttpConnectivityProbe",
    "StaticConnectivity",
    "RemoteStore",
    "Notifier",
    "ResendEmailNotifier",
    "DocumentRenderer",
    # Scoring
    "score_assessment",
    "calculate_total_score",
    "classify_severity",
    # Models
    "DispatchOutcome",
    "DrainReport",
    "ErrorKind",
    "FormType",
    "OutcomeStatus",
    "PatientSession",
    "PendingSubmission",
    "SessionState",
    "ValidationResult",
    # Errors
    "IntakeError",
    "RulesetError",
    "FormValidationError",
    "ConnectivityError",
    "RemoteStoreError",
    "NotificationError",
    "SessionError",
]
