"""Field validators — pure, stateless checks returning a :class:`FieldCheck`.

Each validator judges one value (or one nested selection mapping) and
reports pass/fail plus a user-facing message and an :class:`ErrorKind`.
Nothing here raises for bad input and nothing has side effects; the
:class:`~intake_forms.form_validator.FormValidator` composes these
according to the YAML rule tables.

Date-dependent checks take an optional ``today`` so tests can pin the
calendar.

Usage::

    check = validate_email("jo@example.com")
    if not check.is_valid:
        print(check.kind, check.message)
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from intake_forms.constants import DISPOSABLE_EMAIL_DOMAINS, MAX_AGE, MIN_AGE
from intake_forms.models.codes import ErrorKind
from intake_forms.models.submission import AssessmentCheck, FieldCheck

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NAME_RE = re.compile(r"^[a-zA-Z\s\-'.]+$")
_SSN_RE = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
_CITY_STATE_ZIP_RE = re.compile(r"^[A-Za-z\s]+(?:,\s*[A-Za-z]{2}\s*\d{5}(?:-\d{4})?)?$")
_DOSE_RE = re.compile(r"^\d+(\.\d+)?\s*(mg|g|ml|mcg|IU|units?)?$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings, and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def parse_date(value: Any) -> date | None:
    """Coerce a date, datetime, or ISO-8601 string into a ``date``.

    Returns ``None`` when the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def is_selected(entry: Any) -> bool:
    """A checkbox entry counts when it is ``True`` or a details mapping with ``selected: true``."""
    if entry is True:
        return True
    if isinstance(entry, Mapping):
        return entry.get("selected") is True
    return False


def normalize_responses(responses: Any) -> dict[int, str]:
    """Turn a sparse response mapping (or list) into ``{index: code}``.

    Keys may be ints or numeric strings (JSON objects only have string
    keys); blank values are dropped.
    """
    if responses is None:
        return {}
    if isinstance(responses, (list, tuple)):
        items = enumerate(responses)
    elif isinstance(responses, Mapping):
        items = responses.items()
    else:
        return {}

    normalized: dict[int, str] = {}
    for key, value in items:
        try:
            index = int(key)
        except (TypeError, ValueError):
            continue
        if is_blank(value):
            continue
        normalized[index] = str(value).strip()
    return normalized


def _age_on(born: date, today: date) -> int:
    before_birthday = (today.month, today.day) < (born.month, born.day)
    return today.year - born.year - int(before_birthday)


# ---------------------------------------------------------------------------
# Scalar validators
# ---------------------------------------------------------------------------

def validate_required(value: Any, label: str) -> FieldCheck:
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    return FieldCheck.ok()


def validate_email(
    value: Any, *, reject_disposable: bool = False, label: str = "Email",
) -> FieldCheck:
    """``local@domain.tld`` shape; optionally refuse throwaway domains."""
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    email = str(value).strip()
    if not _EMAIL_RE.match(email):
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, "Please enter a valid email address",
        )
    if reject_disposable:
        domain = email.rsplit("@", 1)[1].lower()
        if domain in DISPOSABLE_EMAIL_DOMAINS:
            return FieldCheck.fail(
                ErrorKind.INVALID_FORMAT, "Please use a valid email address",
            )
    return FieldCheck.ok()


def validate_phone(value: Any, label: str = "Phone number") -> FieldCheck:
    """At least 10 digits once punctuation and spaces are stripped."""
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    digits = re.sub(r"\D", "", str(value))
    if len(digits) < 10:
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"{label} must be at least 10 digits",
        )
    return FieldCheck.ok()


def validate_name(value: Any, label: str = "Name") -> FieldCheck:
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    name = str(value).strip()
    if len(name) < 2:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} must be at least 2 characters",
        )
    if len(name) > 50:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} must be less than 50 characters",
        )
    if not _NAME_RE.match(name):
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT,
            f"{label} can only contain letters, spaces, hyphens, and apostrophes",
        )
    return FieldCheck.ok()


def validate_length(
    value: Any,
    label: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> FieldCheck:
    """Length of the stripped string must fall within [minimum, maximum]."""
    text = "" if value is None else str(value).strip()
    if minimum is not None and len(text) < minimum:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} must be at least {minimum} characters",
        )
    if maximum is not None and len(text) > maximum:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} cannot exceed {maximum} characters",
        )
    return FieldCheck.ok()


def validate_pattern(
    value: Any, pattern: str, label: str, message: str | None = None,
) -> FieldCheck:
    if not re.fullmatch(pattern, str(value).strip()):
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, message or f"Please enter a valid {label.lower()}",
        )
    return FieldCheck.ok()


def validate_choice(value: Any, options: list[str], label: str) -> FieldCheck:
    if str(value) not in options:
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"Please select a valid {label.lower()}",
        )
    return FieldCheck.ok()


def validate_number(
    value: Any,
    label: str,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> FieldCheck:
    try:
        number = float(str(value).strip())
    except ValueError:
        return FieldCheck.fail(ErrorKind.INVALID_FORMAT, f"{label} must be a number")
    if minimum is not None and number < minimum:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} must be at least {minimum:g}",
        )
    if maximum is not None and number > maximum:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} must be at most {maximum:g}",
        )
    return FieldCheck.ok()


def validate_age(
    value: Any,
    label: str = "Age",
    *,
    minimum: int = MIN_AGE,
    maximum: int = MAX_AGE,
) -> FieldCheck:
    """Whole number within [1, 120] by default."""
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    if isinstance(value, bool):
        return FieldCheck.fail(ErrorKind.INVALID_FORMAT, f"{label} must be a number")
    try:
        age = int(str(value).strip())
    except ValueError:
        return FieldCheck.fail(ErrorKind.INVALID_FORMAT, f"{label} must be a number")
    if age < minimum or age > maximum:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} must be between {minimum} and {maximum}",
        )
    return FieldCheck.ok()


def validate_ssn(value: Any, label: str = "SSN") -> FieldCheck:
    if not _SSN_RE.match(str(value).strip()):
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"Please enter a valid {label} (e.g., 123-45-6789)",
        )
    return FieldCheck.ok()


def validate_city_state_zip(value: Any, label: str = "City, State, ZIP") -> FieldCheck:
    if not _CITY_STATE_ZIP_RE.match(str(value).strip()):
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT,
            "Please enter in format: City, State ZIP (e.g., New York, NY 10001)",
        )
    return FieldCheck.ok()


def validate_dose(value: Any, label: str = "Dose") -> FieldCheck:
    """Numeric amount with an optional unit: ``50 mg``, ``0.5g``, ``2 units``."""
    if not _DOSE_RE.match(str(value).strip()):
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT,
            f'Please enter a valid dose for {label} (e.g., "50 mg", "100mg", "0.5 g")',
        )
    return FieldCheck.ok()


# ---------------------------------------------------------------------------
# Date validators
# ---------------------------------------------------------------------------

def validate_date(value: Any, label: str = "Date") -> FieldCheck:
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    if parse_date(value) is None:
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"Please enter a valid {label.lower()}",
        )
    return FieldCheck.ok()


def validate_date_of_birth(
    value: Any, label: str = "Date of birth", *, today: date | None = None,
) -> FieldCheck:
    """Not in the future and an implied age of at most 120.  Today is accepted."""
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    born = parse_date(value)
    if born is None:
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"Please enter a valid {label.lower()}",
        )
    today = today or date.today()
    if born > today:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} cannot be in the future",
        )
    if _age_on(born, today) > MAX_AGE:
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"Please enter a valid {label.lower()}",
        )
    return FieldCheck.ok()


def validate_future_date(
    value: Any, label: str = "Date", *, today: date | None = None,
) -> FieldCheck:
    """Scheduling dates must be strictly after today; today is rejected."""
    if is_blank(value):
        return FieldCheck.fail(ErrorKind.MISSING_FIELD, f"{label} is required")
    when = parse_date(value)
    if when is None:
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"Please enter a valid {label.lower()}",
        )
    if when <= (today or date.today()):
        return FieldCheck.fail(ErrorKind.OUT_OF_RANGE, "Please select a future date")
    return FieldCheck.ok()


def validate_past_date(
    value: Any, label: str = "Date", *, today: date | None = None,
) -> FieldCheck:
    """Optional historical dates: parseable and not after today."""
    when = parse_date(value)
    if when is None:
        return FieldCheck.fail(
            ErrorKind.INVALID_FORMAT, f"Please enter a valid {label.lower()}",
        )
    if when > (today or date.today()):
        return FieldCheck.fail(
            ErrorKind.OUT_OF_RANGE, f"{label} cannot be in the future",
        )
    return FieldCheck.ok()


# ---------------------------------------------------------------------------
# Group validators
# ---------------------------------------------------------------------------

def validate_checkbox_group(selections: Any, label: str) -> FieldCheck:
    """At least one entry of the selection mapping must be ``True``."""
    if isinstance(selections, Mapping) and any(
        is_selected(v) for v in selections.values()
    ):
        return FieldCheck.ok()
    return FieldCheck.fail(
        ErrorKind.EMPTY_SELECTION, f"Please select at least one {label.lower()}.",
    )


def validate_medication_selection(medications: Any) -> FieldCheck:
    """At least one medication in any class must be selected.

    ``medications`` maps class -> medication name -> ``True`` or a details
    mapping carrying ``selected: true``.
    """
    if isinstance(medications, Mapping):
        for per_class in medications.values():
            if isinstance(per_class, Mapping) and any(
                is_selected(entry) for entry in per_class.values()
            ):
                return FieldCheck.ok()
    return FieldCheck.fail(
        ErrorKind.EMPTY_SELECTION, "Please select at least one medication.",
    )


def validate_assessment_responses(
    responses: Any, total_questions: int,
) -> AssessmentCheck:
    """Every question index in ``[0, total_questions)`` must be answered.

    Unanswered questions are reported 1-based, in order.  Calling this twice
    on the same responses yields an identical result.
    """
    answered = normalize_responses(responses)
    unanswered = [i + 1 for i in range(total_questions) if i not in answered]

    if not answered:
        return AssessmentCheck(
            is_valid=False,
            error="Please answer all questions before submitting.",
            unanswered_questions=unanswered,
        )
    if unanswered:
        listed = ", ".join(str(n) for n in unanswered)
        return AssessmentCheck(
            is_valid=False,
            error=f"Please answer all questions. Questions {listed} are unanswered.",
            unanswered_questions=unanswered,
        )
    return AssessmentCheck(is_valid=True)
