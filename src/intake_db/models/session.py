"""Patient identity tables — ``patient_sessions`` and ``patients``.

A device's temporary id gets one ``patient_sessions`` row on its first
submission.  Completing the demographic sheet creates the ``patients`` row
and links the session to it; form rows then carry both ids.
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, ForeignKey, SmallInteger, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from intake_db.models.base import Base, RowMixin


class Patient(RowMixin, Base):
    """A registered patient, created from the demographic sheet.

    ``submission_id`` is the demographic submission that created the row,
    so replaying a queued conversion finds the same patient.
    """

    __tablename__ = "patients"

    # --- Personal ---
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Contact ---
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str | None] = mapped_column(Text, nullable=True)
    zip_code: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Military & employment ---
    active_duty_service_member: Mapped[str | None] = mapped_column(Text, nullable=True)
    dod_benefit: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_employer: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Spouse ---
    spouse_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    spouse_age: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    spouse_date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    spouse_employer: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Insurance ---
    referring_provider: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_health_insurance: Mapped[str | None] = mapped_column(Text, nullable=True)
    policy: Mapped[str | None] = mapped_column(Text, nullable=True)
    group_number: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Medical (free text as entered) ---
    known_medical_conditions: Mapped[str | None] = mapped_column(Text, nullable=True)
    drug_allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_medications: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Emergency contact ---
    emergency_contact_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact_phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact_relationship: Mapped[str | None] = mapped_column(Text, nullable=True)


class PatientSessionRecord(Base):
    """Remote counterpart of a device's temporary session."""

    __tablename__ = "patient_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # TMP_<ms>_<RANDOM> generated on the device
    temporary_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_converted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("now()"),
    )

    def __repr__(self) -> str:
        return (
            f"<PatientSessionRecord id={self.id} temporary_id={self.temporary_id!r} "
            f"converted={self.is_converted}>"
        )
