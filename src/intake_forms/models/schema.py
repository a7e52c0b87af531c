"""Pydantic models for the intake rule tables.

These models mirror the YAML files in ``rulesets/v1/``:

  Forms (from v1/forms/):
    - FormDefinition: sections, fields, and structured group checks
    - FieldDefinition: one input with its ordered rule list
    - FieldRule: a single declarative rule descriptor
    - GroupCheck: assessment / medication / condition-code checks

  Assessments (from v1/assessments/):
    - AssessmentDefinition: questions, option codes, severity bands

  Constants (from v1/const/):
    - Medication: catalog entry for the pre-certification list
"""

import re
from typing import Literal

from pydantic import BaseModel, Field

from intake_forms.models.codes import FormType, MedicationClass, column_name


# ---------------------------------------------------------------------------
# Forms — v1/forms/*.yaml
# ---------------------------------------------------------------------------

RuleType = Literal[
    "required",
    "email",
    "phone",
    "pattern",
    "length",
    "date",
    "date_of_birth",
    "future_date",
    "past_date",
    "age",
    "number",
    "ssn",
    "city_state_zip",
    "choice",
]


class FieldRule(BaseModel):
    """One rule descriptor in a field's rule list.

    Only the parameters relevant to ``type`` are read; ``message``
    overrides the validator's default wording.
    """

    type: RuleType
    message: str | None = None
    pattern: str | None = None
    min: float | None = None
    max: float | None = None
    options: list[str] | None = None
    reject_disposable: bool = False


class FieldCondition(BaseModel):
    """Gate: the owning field is only judged when ``field`` equals ``equals``."""

    field: str
    equals: str


class FieldDefinition(BaseModel):
    """A single form input.

    ``name`` is the key the front-end posts; ``column`` is the record column
    the value is written to (``None`` keeps the value out of the record).
    """

    name: str
    label: str
    section: str
    rules: list[FieldRule] = Field(default_factory=list)
    # Any-of conditions; empty means always judged
    when: list[FieldCondition] = Field(default_factory=list)
    column: str | None = None


class GroupCheck(BaseModel):
    """Structured check over a nested field.

    - ``assessment``: per-question completeness and option membership
    - ``medication_list``: at least one medication, dose / date details
    - ``condition_codes``: checkbox keys must be known condition codes
    """

    type: Literal["assessment", "medication_list", "condition_codes"]
    field: str
    label: str
    section: str
    assessment: str | None = None
    required: bool = True


class SectionDefinition(BaseModel):
    id: str
    title: str


class FormDefinition(BaseModel):
    """Declarative rule table for one form type."""

    form_type: FormType
    title: str
    sections: list[SectionDefinition]
    fields: list[FieldDefinition] = Field(default_factory=list)
    checks: list[GroupCheck] = Field(default_factory=list)

    def section_order(self) -> list[str]:
        return [s.id for s in self.sections]

    def section_of(self, field_name: str) -> str | None:
        """Section a field (or group-check field) belongs to."""
        for f in self.fields:
            if f.name == field_name:
                return f.section
        for c in self.checks:
            if c.field == field_name:
                return c.section
        return None


# ---------------------------------------------------------------------------
# Assessments — v1/assessments/*.yaml
# ---------------------------------------------------------------------------

class AssessmentOption(BaseModel):
    code: str
    label: str


class AssessmentQuestion(BaseModel):
    """One scored question.

    ``special`` marks combined-option questions whose codes carry a letter
    suffix (``1a``, ``2b``); only the numeric prefix is scored.
    """

    index: int
    title: str
    column: str
    special: bool = False
    options: list[AssessmentOption]

    def option_codes(self) -> set[str]:
        return {o.code for o in self.options}


class SeverityBand(BaseModel):
    """Ascending cutoff: scores up to ``max`` inclusive get ``label``.

    The last band has ``max = None`` and catches everything above.
    """

    label: str
    max: int | None = None


class AssessmentDefinition(BaseModel):
    id: str
    title: str
    max_score: int
    questions: list[AssessmentQuestion]
    severity: list[SeverityBand]

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def special_indices(self) -> set[int]:
        return {q.index for q in self.questions if q.special}


# ---------------------------------------------------------------------------
# Constants — v1/const/medications.yaml
# ---------------------------------------------------------------------------

def clean_medication_name(name: str) -> str:
    """Drop parenthesised brand names and collapse whitespace.

    ``"Venlafaxine (Effexor) IR/XR"`` -> ``"Venlafaxine IR/XR"``
    """
    without_brands = re.sub(r"\([^)]*\)", "", name)
    return re.sub(r"\s+", " ", without_brands).strip()


class Medication(BaseModel):
    """Catalog entry; ``name`` is the label shown on the paper form."""

    name: str
    medication_class: MedicationClass

    @property
    def key(self) -> str:
        return clean_medication_name(self.name)

    @property
    def column(self) -> str:
        return column_name(self.key)
