"""One table per stored intake form.

Every form row references the submitting device's ``patient_sessions``
row and, once the session is converted, the ``patients`` row.  Column
names match the ``column`` keys in the form and assessment rule tables.
"""

import datetime as dt
import uuid

from sqlalchemy import Date, ForeignKey, SmallInteger, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from intake_db.models.base import Base, RowMixin


class FormRowMixin(RowMixin):
    """Session / patient links shared by every form table."""

    @declared_attr
    def patient_session_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey("patient_sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    @declared_attr
    def patient_id(cls) -> Mapped[uuid.UUID | None]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey("patients.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        )


class AssessmentRowMixin(FormRowMixin):
    total_score: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    severity: Mapped[str] = mapped_column(Text, nullable=False)
    assessment_date: Mapped[dt.date] = mapped_column(Date, nullable=False)


# ---------------------------------------------------------------------------
# Field forms
# ---------------------------------------------------------------------------

class PatientIntakeForm(FormRowMixin, Base):
    """Patient demographic sheet, stored as entered."""

    __tablename__ = "patient_intake_form"

    full_legal_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Requested consultation date
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    date_of_birth: Mapped[dt.date] = mapped_column(Date, nullable=False)
    age: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    gender: Mapped[str] = mapped_column(Text, nullable=False)
    ssn: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    city_state_zip: Mapped[str] = mapped_column(Text, nullable=False)
    active_duty_service_member: Mapped[str] = mapped_column(Text, nullable=False)
    dod_benefit: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_employer: Mapped[str | None] = mapped_column(Text, nullable=True)
    spouse_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    spouse_age: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    spouse_date_of_birth: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    spouse_ssn: Mapped[str | None] = mapped_column(Text, nullable=True)
    spouse_employer: Mapped[str | None] = mapped_column(Text, nullable=True)
    referring_provider: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_health_insurance: Mapped[str | None] = mapped_column(Text, nullable=True)
    policy: Mapped[str | None] = mapped_column(Text, nullable=True)
    group_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    known_medical_conditions: Mapped[str | None] = mapped_column(Text, nullable=True)
    drug_allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_medications: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact_phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact_relationship: Mapped[str | None] = mapped_column(Text, nullable=True)


class MedHistoryForm(FormRowMixin, Base):
    __tablename__ = "med_history_form"

    # MedicalCondition codes that were checked
    medical_conditions: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list,
    )
    suicidal_thoughts: Mapped[str] = mapped_column(Text, nullable=False)
    attempts: Mapped[str] = mapped_column(Text, nullable=False)
    suicidal_explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_psychiatrist: Mapped[str | None] = mapped_column(Text, nullable=True)
    psychiatric_hospitalizations: Mapped[str | None] = mapped_column(Text, nullable=True)
    legal_charges: Mapped[str | None] = mapped_column(Text, nullable=True)
    legal_explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    allergies: Mapped[str] = mapped_column(Text, nullable=False)
    family_history: Mapped[str] = mapped_column(Text, nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)


class PreCertMedListForm(FormRowMixin, Base):
    __tablename__ = "pre_cert_med_list_form"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    date_of_birth: Mapped[dt.date] = mapped_column(Date, nullable=False)
    # medication column -> {medication_class, name, dosage, start_date,
    # end_date, reason_for_discontinuing}
    medications: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)


# ---------------------------------------------------------------------------
# Assessments (one Text column per question holding the option code)
# ---------------------------------------------------------------------------

class BdiForm(AssessmentRowMixin, Base):
    __tablename__ = "bdi_form"

    sadness_response: Mapped[str] = mapped_column(Text, nullable=False)
    pessimism_response: Mapped[str] = mapped_column(Text, nullable=False)
    past_failure_response: Mapped[str] = mapped_column(Text, nullable=False)
    loss_of_pleasure_response: Mapped[str] = mapped_column(Text, nullable=False)
    guilty_feelings_response: Mapped[str] = mapped_column(Text, nullable=False)
    punishment_feelings_response: Mapped[str] = mapped_column(Text, nullable=False)
    self_dislike_response: Mapped[str] = mapped_column(Text, nullable=False)
    self_criticalness_response: Mapped[str] = mapped_column(Text, nullable=False)
    suicidal_thoughts_response: Mapped[str] = mapped_column(Text, nullable=False)
    crying_response: Mapped[str] = mapped_column(Text, nullable=False)
    agitation_response: Mapped[str] = mapped_column(Text, nullable=False)
    loss_of_interest_response: Mapped[str] = mapped_column(Text, nullable=False)
    indecisiveness_response: Mapped[str] = mapped_column(Text, nullable=False)
    worthlessness_response: Mapped[str] = mapped_column(Text, nullable=False)
    loss_of_energy_response: Mapped[str] = mapped_column(Text, nullable=False)
    # Combined-option questions: 0, 1a, 1b, 2a, 2b, 3a, 3b
    sleep_changes_response: Mapped[str] = mapped_column(Text, nullable=False)
    irritability_response: Mapped[str] = mapped_column(Text, nullable=False)
    appetite_changes_response: Mapped[str] = mapped_column(Text, nullable=False)
    concentration_difficulty_response: Mapped[str] = mapped_column(Text, nullable=False)
    tiredness_response: Mapped[str] = mapped_column(Text, nullable=False)
    loss_of_interest_sex_response: Mapped[str] = mapped_column(Text, nullable=False)


class Phq9Form(AssessmentRowMixin, Base):
    __tablename__ = "phq9_form"

    interest_pleasure_response: Mapped[str] = mapped_column(Text, nullable=False)
    feeling_down_response: Mapped[str] = mapped_column(Text, nullable=False)
    sleep_problems_response: Mapped[str] = mapped_column(Text, nullable=False)
    tired_energy_response: Mapped[str] = mapped_column(Text, nullable=False)
    appetite_problems_response: Mapped[str] = mapped_column(Text, nullable=False)
    self_worth_response: Mapped[str] = mapped_column(Text, nullable=False)
    concentration_problems_response: Mapped[str] = mapped_column(Text, nullable=False)
    movement_problems_response: Mapped[str] = mapped_column(Text, nullable=False)
    suicidal_thoughts_response: Mapped[str] = mapped_column(Text, nullable=False)
