"""Enumerated codes shared by the rule tables, validators, and orchestrator.

Medical conditions and medication classes are closed sets: the rule store
refuses YAML that names anything outside them, and the validators reject
submitted keys that do not map onto a member.
"""

import enum
import re


class FormType(str, enum.Enum):
    """Every form the intake flow can submit.

    ``contact`` is the home/contact consultation request; it is delivered
    by email only and has no database table.
    """

    PATIENT_DEMOGRAPHICS = "patient_demographics"
    MEDICAL_HISTORY = "medical_history"
    BDI = "bdi"
    PHQ9 = "phq9"
    PRE_CERT_MED_LIST = "pre_cert_med_list"
    CONTACT = "contact"

    @property
    def display_name(self) -> str:
        """Human-readable name used in email subjects and attachments."""
        return _DISPLAY_NAMES[self]

    @property
    def table(self) -> str | None:
        """Remote table the structured record is written to, if any."""
        return _TABLES[self]

    @property
    def is_assessment(self) -> bool:
        return self in (FormType.BDI, FormType.PHQ9)


_DISPLAY_NAMES: dict[FormType, str] = {
    FormType.PATIENT_DEMOGRAPHICS: "Patient Demographics",
    FormType.MEDICAL_HISTORY: "Medical History",
    FormType.BDI: "BDI",
    FormType.PHQ9: "PHQ-9",
    FormType.PRE_CERT_MED_LIST: "Pre-Certification Medication List",
    FormType.CONTACT: "Contact Request",
}

_TABLES: dict[FormType, str | None] = {
    FormType.PATIENT_DEMOGRAPHICS: "patient_intake_form",
    FormType.MEDICAL_HISTORY: "med_history_form",
    FormType.BDI: "bdi_form",
    FormType.PHQ9: "phq9_form",
    FormType.PRE_CERT_MED_LIST: "pre_cert_med_list_form",
    FormType.CONTACT: None,
}


class ErrorKind(str, enum.Enum):
    """Why a field failed validation."""

    MISSING_FIELD = "MissingField"
    INVALID_FORMAT = "InvalidFormat"
    OUT_OF_RANGE = "OutOfRange"
    INCOMPLETE_FORM = "IncompleteForm"
    EMPTY_SELECTION = "EmptySelection"


def column_name(label: str) -> str:
    """Turn a display label into a snake_case column / JSON key.

    ``"WEIGHT LOSS/GAIN"`` -> ``"weight_loss_gain"``
    """
    return re.sub(r"[^a-z0-9]+", "_", label.lower()).strip("_")


class MedicalCondition(str, enum.Enum):
    """Conditions listed on the medical-history sheet."""

    ASTHMA = "ASTHMA"
    HEADACHE = "HEADACHE"
    HEART_DISEASE = "HEART DISEASE"
    APPETITE_PROBLEMS = "APPETITE PROBLEMS"
    WEIGHT_LOSS_GAIN = "WEIGHT LOSS/GAIN"
    SLEEP_DIFFICULTY = "SLEEP DIFFICULTY"
    ANXIETY = "ANXIETY"
    STOMACH_TROUBLE = "STOMACH TROUBLE"
    CONSTIPATION = "CONSTIPATION"
    GLAUCOMA = "GLAUCOMA"
    AIDS_HIV = "AIDS/HIV"
    HEPATITIS = "HEPATITIS"
    THYROID_DISEASE = "THYROID DISEASE"
    SYPHILIS = "SYPHILIS"
    SEIZURES = "SEIZURES"
    GONORRHEA = "GONORRHEA"
    TB = "TB"
    HIGH_BLOOD_PRESSURE = "HIGH BLOOD PRESSURE"
    DIABETES = "DIABETES"
    DRINKING_PROBLEMS = "DRINKING PROBLEMS"
    SUBSTANCE_ABUSE = "SUBSTANCE ABUSE"
    FATIGUE = "FATIGUE"
    LOSS_OF_CONCENTRATION = "LOSS OF CONCENTRATION"
    RECURRENT_THOUGHTS = "RECURRENT THOUGHTS"
    SEXUAL_PROBLEMS = "SEXUAL PROBLEMS"

    @property
    def column(self) -> str:
        return column_name(self.value)


class MedicationClass(str, enum.Enum):
    """Antidepressant / augmenting classes on the pre-certification list."""

    SSRI = "SSRI"
    SNRI = "SNRI"
    TRICYCLIC = "TRICYCLIC"
    MAOI = "MAOI"
    ATYPICAL = "ATYPICAL"
    AUGMENTING_AGENT = "AUGMENTING AGENT"


class SessionState(str, enum.Enum):
    """Lifecycle of the per-device patient session.

    Transitions:
        no_session -> local_only  (temporary id generated and stored locally)
        local_only -> verified    (remote patient_sessions row found or created)
        verified -> converted     (demographics submitted, patient row linked)
    """

    NO_SESSION = "no_session"
    LOCAL_ONLY = "local_only"
    VERIFIED = "verified"
    CONVERTED = "converted"


class PendingStage(str, enum.Enum):
    """What a queued submission still owes.

    ``full`` entries replay the whole dispatch (email + record); ``record``
    entries were emailed already and only need the database write.
    """

    FULL = "full"
    RECORD = "record"


class OutcomeStatus(str, enum.Enum):
    """Combined result of the two dispatch channels."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
