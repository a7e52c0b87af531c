"""intake_db — PostgreSQL persistence layer for intake submissions.

This package provides the ORM models, async engine factory, and the
``SqlRemoteStore`` that the intake SDK writes session, patient, and form
rows through.  It is consumed by the FastAPI server and the retry CLI.
"""

from intake_db.engine import dispose_engine, get_engine, get_session_factory
from intake_db.models import TABLE_MODELS, Patient, PatientSessionRecord
from intake_db.repository import RecordRepository, SqlRemoteStore

__all__ = [
    "TABLE_MODELS",
    "Patient",
    "PatientSessionRecord",
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "RecordRepository",
    "SqlRemoteStore",
]
