"""Record builders — turn validated form fields into remote table rows.

Field forms map each field onto its declared ``column``.  Group checks
contribute structured columns:

  - assessment: one ``*_response`` column per question plus
    ``total_score``, ``severity`` and ``assessment_date``
  - medication_list: ``medications`` JSON keyed by medication column
  - condition_codes: ``medical_conditions`` list of selected codes

Every row carries ``patient_session_id`` and the submission's
``submission_id`` (idempotency key).  Values are kept JSON-safe (dates as
ISO strings) so rows can be queued and replayed unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from intake_forms.models.codes import FormType, MedicationClass
from intake_forms.models.schema import FormDefinition, GroupCheck
from intake_forms.ruleset import FormRuleStore
from intake_forms.scoring import score_assessment
from intake_forms.validators import is_blank, is_selected, normalize_responses

# "Pensacola, FL 32501" / "Pensacola, FL 32501-1234" / "Pensacola"
_CITY_STATE_ZIP_RE = re.compile(
    r"^\s*(?P<city>[^,]+?)\s*(?:,\s*(?P<state>[A-Za-z]{2})\s*(?P<zip>\d{5}(?:-\d{4})?))?\s*$"
)

# Demographic columns that stay on the intake form and are not copied
# onto the patient row.
_FORM_ONLY_COLUMNS = frozenset(
    {"date", "age", "full_legal_name", "city_state_zip", "ssn", "spouse_ssn"}
)


def column_value(value: Any) -> Any:
    """JSON-safe column value: blanks become ``None``, dates ISO strings."""
    if is_blank(value):
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    return value


def split_full_name(full_name: str) -> tuple[str, str]:
    """``"Mary Ann Smith"`` -> ``("Mary Ann", "Smith")``."""
    parts = full_name.split()
    if len(parts) < 2:
        return full_name.strip(), ""
    return " ".join(parts[:-1]), parts[-1]


def split_city_state_zip(value: str) -> dict[str, str | None]:
    match = _CITY_STATE_ZIP_RE.match(value or "")
    if match is None:
        return {"city": column_value(value), "state": None, "zip_code": None}
    state = match.group("state")
    return {
        "city": match.group("city"),
        "state": state.upper() if state else None,
        "zip_code": match.group("zip"),
    }


class RecordBuilder:
    """Builds remote rows from form fields using the loaded rule tables.

    Args:
        store: a loaded :class:`FormRuleStore`.
    """

    def __init__(self, store: FormRuleStore) -> None:
        self._store = store

    def build(
        self,
        form_type: FormType,
        form_data: Mapping[str, Any],
        *,
        patient_session_id: str,
        submission_id: str,
        patient_id: str | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """Row for ``form_type.table``.

        ``patient_id`` is set once the session has been converted.

        Raises:
            ValueError: the form type has no table (contact requests).
        """
        if form_type.table is None:
            raise ValueError(f"{form_type.value} submissions are not stored as records")

        form = self._store.get_form(form_type)
        row: dict[str, Any] = {
            "patient_session_id": patient_session_id,
            "submission_id": submission_id,
        }
        if patient_id is not None:
            row["patient_id"] = patient_id
        row.update(self._field_columns(form, form_data))
        for group in form.checks:
            if group.type == "assessment":
                row.update(self._assessment_columns(group, form_data, today or date.today()))
            elif group.type == "medication_list":
                row["medications"] = self._medication_columns(form_data.get(group.field))
            else:
                row["medical_conditions"] = self._condition_codes(form_data.get(group.field))
        return row

    def build_patient(self, form_data: Mapping[str, Any]) -> dict[str, Any]:
        """``patients`` row from a demographic sheet."""
        form = self._store.get_form(FormType.PATIENT_DEMOGRAPHICS)
        row = {
            column: value
            for column, value in self._field_columns(form, form_data).items()
            if column not in _FORM_ONLY_COLUMNS
        }
        first_name, last_name = split_full_name(str(form_data.get("fullLegalName") or ""))
        row["first_name"] = first_name
        row["last_name"] = last_name
        row.update(split_city_state_zip(str(form_data.get("cityStateZip") or "")))
        return row

    # ------------------------------------------------------------------
    # Column groups
    # ------------------------------------------------------------------

    @staticmethod
    def _field_columns(form: FormDefinition, form_data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            field.column: column_value(form_data.get(field.name))
            for field in form.fields
            if field.column
        }

    def _assessment_columns(
        self, group: GroupCheck, form_data: Mapping[str, Any], today: date,
    ) -> dict[str, Any]:
        definition = self._store.get_assessment(group.assessment)
        responses = normalize_responses(form_data.get(group.field))
        columns: dict[str, Any] = {
            q.column: responses.get(q.index) for q in definition.questions
        }

        total, severity = form_data.get("totalScore"), form_data.get("severity")
        if total is None or severity is None:
            score = score_assessment(definition, responses)
            total, severity = score.total_score, score.severity
        columns["total_score"] = int(total)
        columns["severity"] = severity
        columns["assessment_date"] = today.isoformat()
        return columns

    def _medication_columns(self, medications: Any) -> dict[str, Any]:
        """Selected medications keyed by column, with their detail fields."""
        selected: dict[str, Any] = {}
        if not isinstance(medications, Mapping):
            return selected
        for class_name, per_class in medications.items():
            if not isinstance(per_class, Mapping):
                continue
            for med_name, entry in per_class.items():
                if not is_selected(entry):
                    continue
                med = self._store.find_medication(class_name, med_name)
                if med is None:
                    continue
                details = entry if isinstance(entry, Mapping) else {}
                selected[med.column] = {
                    "medication_class": MedicationClass(class_name).value,
                    "name": med.key,
                    "dosage": column_value(details.get("dosage") or details.get("dose")),
                    "start_date": column_value(details.get("startDate")),
                    "end_date": column_value(details.get("endDate")),
                    "reason_for_discontinuing": column_value(
                        details.get("reasonForDiscontinuing")
                    ),
                }
        return selected

    @staticmethod
    def _condition_codes(conditions: Any) -> list[str]:
        if not isinstance(conditions, Mapping):
            return []
        return [str(code) for code, entry in conditions.items() if is_selected(entry)]
