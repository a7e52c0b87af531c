"""FormValidator — one generic validator driven by the YAML rule tables.

Every form type is described by a :class:`FormDefinition`: a list of
fields, each with an ordered rule list, plus structured group checks for
nested inputs (assessment responses, the medication grid, the medical
condition checkboxes).

Evaluation policy:
  - Every field is judged; one failing field never hides another.
  - Within a field, rules run in order and stop at the first failure.
  - Only ``required`` runs on a blank value; every other rule is skipped
    when the field was left empty.
  - Fields with ``when`` conditions are only judged when at least one
    condition holds.

Usage::

    validator = FormValidator(store)
    result = validator.validate_form(FormType.CONTACT, fields)
    if not result.is_valid:
        scroll_to(result.first_invalid_section)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from intake_forms.constants import MAX_AGE, MIN_AGE
from intake_forms.models.codes import ErrorKind, FormType, MedicalCondition, MedicationClass
from intake_forms.models.schema import (
    FieldDefinition,
    FieldRule,
    FormDefinition,
    GroupCheck,
)
from intake_forms.models.submission import FieldCheck, FieldIssue, ValidationResult
from intake_forms.ruleset import FormRuleStore
from intake_forms.validators import (
    is_blank,
    is_selected,
    normalize_responses,
    parse_date,
    validate_age,
    validate_assessment_responses,
    validate_checkbox_group,
    validate_choice,
    validate_city_state_zip,
    validate_date,
    validate_date_of_birth,
    validate_dose,
    validate_email,
    validate_future_date,
    validate_length,
    validate_medication_selection,
    validate_number,
    validate_past_date,
    validate_pattern,
    validate_phone,
    validate_required,
    validate_ssn,
)

# rule type -> (value, rule, label, today) -> FieldCheck
_RuleFn = Callable[[Any, FieldRule, str, date | None], FieldCheck]


def _opt_int(value: float | None) -> int | None:
    return None if value is None else int(value)


_RULES: dict[str, _RuleFn] = {
    "required": lambda v, r, label, today: validate_required(v, label),
    "email": lambda v, r, label, today: validate_email(
        v, reject_disposable=r.reject_disposable, label=label,
    ),
    "phone": lambda v, r, label, today: validate_phone(v, label),
    "pattern": lambda v, r, label, today: validate_pattern(v, r.pattern or ".*", label),
    "length": lambda v, r, label, today: validate_length(
        v, label, minimum=_opt_int(r.min), maximum=_opt_int(r.max),
    ),
    "date": lambda v, r, label, today: validate_date(v, label),
    "date_of_birth": lambda v, r, label, today: validate_date_of_birth(v, label, today=today),
    "future_date": lambda v, r, label, today: validate_future_date(v, label, today=today),
    "past_date": lambda v, r, label, today: validate_past_date(v, label, today=today),
    "age": lambda v, r, label, today: validate_age(
        v,
        label,
        minimum=MIN_AGE if r.min is None else int(r.min),
        maximum=MAX_AGE if r.max is None else int(r.max),
    ),
    "number": lambda v, r, label, today: validate_number(
        v, label, minimum=r.min, maximum=r.max,
    ),
    "ssn": lambda v, r, label, today: validate_ssn(v, label),
    "city_state_zip": lambda v, r, label, today: validate_city_state_zip(v, label),
    "choice": lambda v, r, label, today: validate_choice(v, r.options or [], label),
}


class FormValidator:
    """Validates raw field mappings against the loaded rule tables.

    Args:
        store: a loaded :class:`FormRuleStore`.
    """

    def __init__(self, store: FormRuleStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_form(
        self,
        form_type: FormType | str,
        fields: Mapping[str, Any],
        *,
        today: date | None = None,
    ) -> ValidationResult:
        """Run every field rule and group check for one form.

        Returns a :class:`ValidationResult` with all failures at once; the
        first invalid field/section follow the form's section order.
        """
        form = self._store.get_form(form_type)
        today = today or date.today()
        issues: list[FieldIssue] = []
        unanswered: list[int] = []

        for field in form.fields:
            if not self._applies(field, fields):
                continue
            check = self._check_field(field, fields.get(field.name), today)
            if not check.is_valid:
                issues.append(
                    FieldIssue(
                        field=field.name,
                        kind=check.kind,
                        message=check.message,
                        section=field.section,
                    )
                )

        for group in form.checks:
            value = fields.get(group.field)
            if group.type == "assessment":
                group_issues, unanswered = self._check_assessment(group, value)
            elif group.type == "medication_list":
                group_issues = self._check_medications(group, value, today)
            else:
                group_issues = self._check_conditions(group, value)
            issues.extend(group_issues)

        return self._result(form, issues, unanswered)

    # ------------------------------------------------------------------
    # Field rules
    # ------------------------------------------------------------------

    @staticmethod
    def _applies(field: FieldDefinition, fields: Mapping[str, Any]) -> bool:
        if not field.when:
            return True
        return any(str(fields.get(c.field, "")) == c.equals for c in field.when)

    @staticmethod
    def _check_field(
        field: FieldDefinition, value: Any, today: date,
    ) -> FieldCheck:
        blank = is_blank(value)
        for rule in field.rules:
            if rule.type != "required" and blank:
                continue
            check = _RULES[rule.type](value, rule, field.label, today)
            if not check.is_valid:
                if rule.message:
                    return FieldCheck.fail(check.kind, rule.message)
                return check
        return FieldCheck.ok()

    # ------------------------------------------------------------------
    # Group checks
    # ------------------------------------------------------------------

    def _check_assessment(
        self, group: GroupCheck, value: Any,
    ) -> tuple[list[FieldIssue], list[int]]:
        """Completeness plus option membership, judged per question."""
        definition = self._store.get_assessment(group.assessment)
        issues: list[FieldIssue] = []

        completeness = validate_assessment_responses(value, definition.question_count)
        if not completeness.is_valid:
            issues.append(
                FieldIssue(
                    field=group.field,
                    kind=ErrorKind.INCOMPLETE_FORM,
                    message=completeness.error,
                    section=group.section,
                )
            )

        for index, code in sorted(normalize_responses(value).items()):
            if not 0 <= index < definition.question_count:
                issues.append(
                    FieldIssue(
                        field=f"{group.field}.{index}",
                        kind=ErrorKind.INVALID_FORMAT,
                        message=f"This questionnaire has no question {index + 1}",
                        section=group.section,
                    )
                )
                continue
            question = definition.questions[index]
            if code not in question.option_codes():
                issues.append(
                    FieldIssue(
                        field=f"{group.field}.{index}",
                        kind=ErrorKind.INVALID_FORMAT,
                        message=f"Question {index + 1}: please choose one of the listed answers",
                        section=group.section,
                    )
                )
        return issues, completeness.unanswered_questions

    def _check_medications(
        self, group: GroupCheck, value: Any, today: date,
    ) -> list[FieldIssue]:
        """At least one medication, then dose and date details per selection."""
        issues: list[FieldIssue] = []

        def add(field_name: str, kind: ErrorKind, message: str) -> None:
            issues.append(
                FieldIssue(field=field_name, kind=kind, message=message, section=group.section)
            )

        selection = validate_medication_selection(value)
        if not selection.is_valid:
            if group.required:
                add(group.field, selection.kind, selection.message)
            return issues

        for class_name, per_class in value.items():
            try:
                med_class = MedicationClass(class_name)
            except ValueError:
                add(group.field, ErrorKind.INVALID_FORMAT, f"Unknown medication class: {class_name}")
                continue
            if not isinstance(per_class, Mapping):
                continue

            for med_name, entry in per_class.items():
                if not is_selected(entry):
                    continue
                med = self._store.find_medication(med_class, med_name)
                if med is None:
                    add(group.field, ErrorKind.INVALID_FORMAT, f"Unknown medication: {med_name}")
                    continue
                details = entry if isinstance(entry, Mapping) else {}

                dose = details.get("dosage") or details.get("dose")
                if not is_blank(dose):
                    check = validate_dose(dose, med.key)
                    if not check.is_valid:
                        add(f"{med.column}_dosage", check.kind, check.message)

                start_raw, end_raw = details.get("startDate"), details.get("endDate")
                start = parse_date(start_raw) if not is_blank(start_raw) else None
                end = parse_date(end_raw) if not is_blank(end_raw) else None
                if not is_blank(start_raw) and start is None:
                    add(f"{med.column}_start_date", ErrorKind.INVALID_FORMAT,
                        f"Please enter a valid start date for {med.key}")
                elif start is not None and start > today:
                    add(f"{med.column}_start_date", ErrorKind.OUT_OF_RANGE,
                        f"Start date cannot be in the future for {med.key}")
                if not is_blank(end_raw) and end is None:
                    add(f"{med.column}_end_date", ErrorKind.INVALID_FORMAT,
                        f"Please enter a valid end date for {med.key}")
                elif start is not None and end is not None and end < start:
                    add(f"{med.column}_end_date", ErrorKind.OUT_OF_RANGE,
                        f"End date cannot be before start date for {med.key}")
        return issues

    @staticmethod
    def _check_conditions(group: GroupCheck, value: Any) -> list[FieldIssue]:
        """Checkbox keys must be known condition codes."""
        if is_blank(value):
            value = {}
        if not isinstance(value, Mapping):
            return [
                FieldIssue(
                    field=group.field,
                    kind=ErrorKind.INVALID_FORMAT,
                    message=f"{group.label} must be a set of checkboxes",
                    section=group.section,
                )
            ]

        known = {c.value for c in MedicalCondition}
        unknown = sorted(str(k) for k in value if str(k) not in known)
        if unknown:
            return [
                FieldIssue(
                    field=group.field,
                    kind=ErrorKind.INVALID_FORMAT,
                    message=f"Unknown medical condition: {', '.join(unknown)}",
                    section=group.section,
                )
            ]
        if group.required:
            check = validate_checkbox_group(value, group.label)
            if not check.is_valid:
                return [
                    FieldIssue(
                        field=group.field,
                        kind=check.kind,
                        message=check.message,
                        section=group.section,
                    )
                ]
        return []

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    @staticmethod
    def _result(
        form: FormDefinition, issues: list[FieldIssue], unanswered: list[int],
    ) -> ValidationResult:
        order = {section: i for i, section in enumerate(form.section_order())}
        # Stable sort keeps field order within a section
        ranked = sorted(issues, key=lambda issue: order.get(issue.section, len(order)))

        errors: dict[str, str] = {}
        for issue in ranked:
            errors.setdefault(issue.field, issue.message)

        first = ranked[0] if ranked else None
        return ValidationResult(
            form_type=form.form_type,
            is_valid=not ranked,
            errors=errors,
            issues=ranked,
            first_invalid_field=first.field if first else None,
            first_invalid_section=first.section if first else None,
            unanswered_questions=unanswered,
        )
