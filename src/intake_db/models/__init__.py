"""ORM models for intake_db."""

from intake_db.models.base import Base
from intake_db.models.forms import (
    BdiForm,
    MedHistoryForm,
    PatientIntakeForm,
    Phq9Form,
    PreCertMedListForm,
)
from intake_db.models.session import Patient, PatientSessionRecord

# table name -> mapped class, for the generic remote store
TABLE_MODELS: dict[str, type[Base]] = {
    model.__tablename__: model
    for model in (
        PatientSessionRecord,
        Patient,
        PatientIntakeForm,
        MedHistoryForm,
        BdiForm,
        Phq9Form,
        PreCertMedListForm,
    )
}

__all__ = [
    "Base",
    "TABLE_MODELS",
    "Patient",
    "PatientSessionRecord",
    "PatientIntakeForm",
    "MedHistoryForm",
    "BdiForm",
    "Phq9Form",
    "PreCertMedListForm",
]
