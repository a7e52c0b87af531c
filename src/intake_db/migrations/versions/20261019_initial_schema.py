"""Create the patient identity and intake form tables.

patient_sessions and patients hold device/patient identity; one table per
stored form references both.  Every form row and patient row carries a
unique submission_id so replayed queue entries find the row they wrote.

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None

BDI_RESPONSES = [
    "sadness", "pessimism", "past_failure", "loss_of_pleasure", "guilty_feelings",
    "punishment_feelings", "self_dislike", "self_criticalness", "suicidal_thoughts",
    "crying", "agitation", "loss_of_interest", "indecisiveness", "worthlessness",
    "loss_of_energy", "sleep_changes", "irritability", "appetite_changes",
    "concentration_difficulty", "tiredness", "loss_of_interest_sex",
]

PHQ9_RESPONSES = [
    "interest_pleasure", "feeling_down", "sleep_problems", "tired_energy",
    "appetite_problems", "self_worth", "concentration_problems",
    "movement_problems", "suicidal_thoughts",
]

FORM_TABLES = [
    "patient_intake_form",
    "med_history_form",
    "bdi_form",
    "phq9_form",
    "pre_cert_med_list_form",
]


def _row_columns() -> list[sa.Column]:
    """Primary key, idempotency key, and creation time."""
    return [
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("submission_id", sa.Text, nullable=True, unique=True),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _form_links() -> list[sa.Column]:
    return [
        sa.Column(
            "patient_session_id",
            UUID(as_uuid=True),
            sa.ForeignKey("patient_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "patient_id",
            UUID(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="SET NULL"),
            nullable=True,
        ),
    ]


def _text(*names: str, nullable: bool = True) -> list[sa.Column]:
    return [sa.Column(name, sa.Text, nullable=nullable) for name in names]


def _assessment_columns(responses: list[str]) -> list[sa.Column]:
    return [
        *_text(*(f"{name}_response" for name in responses), nullable=False),
        sa.Column("total_score", sa.SmallInteger, nullable=False),
        sa.Column("severity", sa.Text, nullable=False),
        sa.Column("assessment_date", sa.Date, nullable=False),
    ]


def upgrade() -> None:
    # --- Identity ---
    op.create_table(
        "patients",
        *_row_columns(),
        *_text("first_name", "last_name"),
        sa.Column("date_of_birth", sa.Date, nullable=True),
        *_text("gender", "email", "phone", "address", "city", "state", "zip_code"),
        *_text("active_duty_service_member", "dod_benefit", "current_employer"),
        sa.Column("spouse_name", sa.Text, nullable=True),
        sa.Column("spouse_age", sa.SmallInteger, nullable=True),
        sa.Column("spouse_date_of_birth", sa.Date, nullable=True),
        sa.Column("spouse_employer", sa.Text, nullable=True),
        *_text("referring_provider", "primary_health_insurance", "policy", "group_number"),
        *_text("known_medical_conditions", "drug_allergies", "current_medications"),
        *_text(
            "emergency_contact_name",
            "emergency_contact_phone",
            "emergency_contact_relationship",
        ),
    )
    op.create_table(
        "patient_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("temporary_id", sa.Text, nullable=False, unique=True),
        sa.Column(
            "patient_id",
            UUID(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "is_converted",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_patient_sessions_patient_id", "patient_sessions", ["patient_id"])

    # --- Field forms ---
    op.create_table(
        "patient_intake_form",
        *_row_columns(),
        *_form_links(),
        sa.Column("full_legal_name", sa.Text, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("date_of_birth", sa.Date, nullable=False),
        sa.Column("age", sa.SmallInteger, nullable=False),
        *_text("gender", nullable=False),
        sa.Column("ssn", sa.Text, nullable=True),
        *_text("phone", "email", "address", "city_state_zip", nullable=False),
        *_text("active_duty_service_member", nullable=False),
        *_text("dod_benefit", "current_employer", "spouse_name"),
        sa.Column("spouse_age", sa.SmallInteger, nullable=True),
        sa.Column("spouse_date_of_birth", sa.Date, nullable=True),
        *_text("spouse_ssn", "spouse_employer"),
        *_text("referring_provider", "primary_health_insurance", "policy", "group_number"),
        *_text("known_medical_conditions", "drug_allergies", "current_medications"),
        *_text(
            "emergency_contact_name",
            "emergency_contact_phone",
            "emergency_contact_relationship",
        ),
    )
    op.create_table(
        "med_history_form",
        *_row_columns(),
        *_form_links(),
        sa.Column(
            "medical_conditions",
            ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        *_text("suicidal_thoughts", "attempts", nullable=False),
        *_text(
            "suicidal_explanation",
            "previous_psychiatrist",
            "psychiatric_hospitalizations",
            "legal_charges",
            "legal_explanation",
        ),
        *_text("allergies", "family_history", "signature", nullable=False),
    )
    op.create_table(
        "pre_cert_med_list_form",
        *_row_columns(),
        *_form_links(),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("date_of_birth", sa.Date, nullable=False),
        sa.Column(
            "medications",
            JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )

    # --- Assessments ---
    op.create_table("bdi_form", *_row_columns(), *_form_links(), *_assessment_columns(BDI_RESPONSES))
    op.create_table("phq9_form", *_row_columns(), *_form_links(), *_assessment_columns(PHQ9_RESPONSES))

    # --- Indexes ---
    for table in FORM_TABLES:
        op.create_index(f"ix_{table}_patient_session_id", table, ["patient_session_id"])
        op.create_index(f"ix_{table}_patient_id", table, ["patient_id"])


def downgrade() -> None:
    for table in reversed(FORM_TABLES):
        op.drop_table(table)
    op.drop_table("patient_sessions")
    op.drop_table("patients")
