"""Field validator unit tests.

Each validator is pure: it judges one value and returns a FieldCheck with
pass/fail, a user-facing message, and an ErrorKind.  Date-dependent checks
are pinned to a fixed ``today``.
"""

from datetime import date

import pytest

from intake_forms.models.codes import ErrorKind
from intake_forms.validators import (
    is_blank,
    normalize_responses,
    parse_date,
    validate_age,
    validate_assessment_responses,
    validate_checkbox_group,
    validate_city_state_zip,
    validate_date_of_birth,
    validate_dose,
    validate_email,
    validate_future_date,
    validate_length,
    validate_medication_selection,
    validate_name,
    validate_past_date,
    validate_phone,
    validate_required,
    validate_ssn,
)

TODAY = date(2026, 10, 19)


# =====================================================================
# Helpers
# =====================================================================


class TestHelpers:
    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_blank_values(self, value):
        assert is_blank(value), f"{value!r} should be blank"

    @pytest.mark.parametrize("value", [0, False, "x", ["a"]])
    def test_non_blank_values(self, value):
        assert not is_blank(value), f"{value!r} should not be blank"

    def test_parse_date_accepts_iso_datetime(self):
        assert parse_date("2026-10-19T08:30:00Z") == date(2026, 10, 19)

    def test_parse_date_rejects_garbage(self):
        assert parse_date("next tuesday") is None
        assert parse_date(20261019) is None

    def test_normalize_responses_string_keys(self):
        assert normalize_responses({"0": "1", "2": " 3 ", "x": "2", "4": ""}) == {0: "1", 2: "3"}

    def test_normalize_responses_list(self):
        assert normalize_responses(["0", None, "2"]) == {0: "0", 2: "2"}


# =====================================================================
# Scalar validators
# =====================================================================


class TestRequired:
    def test_missing(self):
        check = validate_required("  ", "Allergies")
        assert not check.is_valid
        assert check.kind == ErrorKind.MISSING_FIELD
        assert check.message == "Allergies is required"

    def test_present(self):
        assert validate_required("None", "Allergies").is_valid


class TestEmail:
    @pytest.mark.parametrize("email", ["jo@example.com", "a.b+c@clinic.org"])
    def test_valid(self, email):
        assert validate_email(email).is_valid

    @pytest.mark.parametrize("email", ["jo@example", "jo example@x.com", "@x.com", "jo@"])
    def test_invalid_format(self, email):
        check = validate_email(email)
        assert not check.is_valid
        assert check.kind == ErrorKind.INVALID_FORMAT

    def test_disposable_only_when_requested(self):
        assert validate_email("x@mailinator.com").is_valid
        check = validate_email("x@Mailinator.com", reject_disposable=True)
        assert not check.is_valid
        assert check.kind == ErrorKind.INVALID_FORMAT

    def test_missing(self):
        assert validate_email("").kind == ErrorKind.MISSING_FIELD


class TestPhone:
    def test_formatted_ten_digits(self):
        assert validate_phone("(850) 555-0134").is_valid

    def test_too_short(self):
        check = validate_phone("555-0134")
        assert check.kind == ErrorKind.INVALID_FORMAT
        assert "10 digits" in check.message


class TestName:
    def test_valid(self):
        assert validate_name("Mary-Ann O'Neil").is_valid

    def test_too_short(self):
        assert validate_name("M").kind == ErrorKind.OUT_OF_RANGE

    def test_too_long(self):
        assert validate_name("a" * 51).kind == ErrorKind.OUT_OF_RANGE

    def test_digits_rejected(self):
        assert validate_name("R2D2").kind == ErrorKind.INVALID_FORMAT


class TestLength:
    def test_bounds_inclusive(self):
        assert validate_length("abc", "Signature", minimum=3, maximum=3).is_valid

    def test_under_minimum(self):
        check = validate_length("ab", "Signature", minimum=3)
        assert check.kind == ErrorKind.OUT_OF_RANGE

    def test_over_maximum(self):
        check = validate_length("x" * 501, "Allergies", maximum=500)
        assert check.message == "Allergies cannot exceed 500 characters"


class TestAge:
    @pytest.mark.parametrize("age", ["1", 41, "120"])
    def test_in_range(self, age):
        assert validate_age(age).is_valid

    @pytest.mark.parametrize("age", ["0", "121", -3])
    def test_out_of_range(self, age):
        assert validate_age(age).kind == ErrorKind.OUT_OF_RANGE

    @pytest.mark.parametrize("age", ["forty", "4.5", True])
    def test_not_a_whole_number(self, age):
        assert validate_age(age).kind == ErrorKind.INVALID_FORMAT


class TestFormats:
    @pytest.mark.parametrize("ssn", ["123-45-6789", "123456789"])
    def test_ssn_valid(self, ssn):
        assert validate_ssn(ssn).is_valid

    def test_ssn_invalid(self):
        assert validate_ssn("12-345-6789").kind == ErrorKind.INVALID_FORMAT

    @pytest.mark.parametrize("value", ["Pensacola, FL 32501", "New York, NY 10001-1234", "Destin"])
    def test_city_state_zip_valid(self, value):
        assert validate_city_state_zip(value).is_valid

    @pytest.mark.parametrize("value", ["Pensacola, Florida 32501", "Pensacola, FL 325"])
    def test_city_state_zip_invalid(self, value):
        assert not validate_city_state_zip(value).is_valid

    @pytest.mark.parametrize("dose", ["50 mg", "100mg", "0.5 g", "2 units", "10"])
    def test_dose_valid(self, dose):
        assert validate_dose(dose).is_valid

    @pytest.mark.parametrize("dose", ["fifty mg", "50 tablets", "mg 50"])
    def test_dose_invalid(self, dose):
        assert validate_dose(dose).kind == ErrorKind.INVALID_FORMAT


# =====================================================================
# Date validators
# =====================================================================


class TestDates:
    def test_dob_today_accepted(self):
        assert validate_date_of_birth("2026-10-19", today=TODAY).is_valid

    def test_dob_future_rejected(self):
        check = validate_date_of_birth("2026-10-20", today=TODAY)
        assert check.kind == ErrorKind.OUT_OF_RANGE

    def test_dob_older_than_120_rejected(self):
        assert validate_date_of_birth("1905-10-19", today=TODAY).kind == ErrorKind.OUT_OF_RANGE
        assert validate_date_of_birth("1905-10-20", today=TODAY).is_valid

    def test_dob_unparseable(self):
        assert validate_date_of_birth("12/31/1999", today=TODAY).kind == ErrorKind.INVALID_FORMAT

    def test_future_date_rejects_today(self):
        check = validate_future_date("2026-10-19", today=TODAY)
        assert check.kind == ErrorKind.OUT_OF_RANGE
        assert check.message == "Please select a future date"

    def test_future_date_accepts_tomorrow(self):
        assert validate_future_date("2026-10-20", today=TODAY).is_valid

    def test_past_date(self):
        assert validate_past_date("2026-10-19", today=TODAY).is_valid
        assert validate_past_date("2027-01-01", today=TODAY).kind == ErrorKind.OUT_OF_RANGE


# =====================================================================
# Group validators
# =====================================================================


class TestGroups:
    def test_checkbox_group_needs_one_true(self):
        assert validate_checkbox_group({"ANXIETY": True}, "Condition").is_valid
        check = validate_checkbox_group({"ANXIETY": False}, "Condition")
        assert check.kind == ErrorKind.EMPTY_SELECTION
        assert check.message == "Please select at least one condition."

    def test_medication_selection_any_class(self):
        assert validate_medication_selection({"SSRI": {}, "MAOI": {"Phenelzine": True}}).is_valid
        assert validate_medication_selection(
            {"SSRI": {"Sertraline": {"selected": True, "dosage": "50 mg"}}}
        ).is_valid

    def test_medication_selection_empty(self):
        for value in (None, {}, {"SSRI": {"Sertraline": False}}, {"SSRI": {"Sertraline": {"dosage": "5"}}}):
            check = validate_medication_selection(value)
            assert check.kind == ErrorKind.EMPTY_SELECTION, f"{value!r} should be empty"


class TestAssessmentResponses:
    def test_complete(self):
        check = validate_assessment_responses({str(i): "0" for i in range(9)}, 9)
        assert check.is_valid
        assert check.unanswered_questions == []

    def test_empty_lists_every_question(self):
        check = validate_assessment_responses({}, 9)
        assert not check.is_valid
        assert check.error == "Please answer all questions before submitting."
        assert check.unanswered_questions == list(range(1, 10))

    def test_partial_reports_one_based(self):
        responses = {str(i): "1" for i in range(9) if i not in (2, 7)}
        check = validate_assessment_responses(responses, 9)
        assert check.unanswered_questions == [3, 8]
        assert check.error == "Please answer all questions. Questions 3, 8 are unanswered."

    def test_idempotent(self):
        responses = {"0": "1", "5": "2"}
        first = validate_assessment_responses(responses, 9)
        second = validate_assessment_responses(responses, 9)
        assert first == second
