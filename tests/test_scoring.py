"""Assessment scoring tests — totals, lettered codes, severity bands."""

import pytest

from intake_forms.scoring import (
    BDI_THRESHOLDS,
    PHQ9_THRESHOLDS,
    calculate_total_score,
    classify_severity,
    response_points,
    score_assessment,
)


# =====================================================================
# Response points
# =====================================================================


@pytest.mark.parametrize("code, special, points", [
    ("0", False, 0),
    ("3", False, 3),
    ("2b", True, 2),
    ("3a", True, 3),
    ("1", True, 1),
])
def test_response_points(code, special, points):
    assert response_points(code, special=special) == points


def test_lettered_code_rejected_on_plain_question():
    with pytest.raises(ValueError):
        response_points("2b")


# =====================================================================
# Totals
# =====================================================================


def test_total_uses_numeric_prefix_on_special_questions():
    responses = {str(i): "0" for i in range(21)}
    responses["15"] = "2b"
    responses["17"] = "3a"
    responses["0"] = "1"
    assert calculate_total_score(responses, 21, {15, 17}) == 6


def test_unanswered_questions_contribute_zero():
    assert calculate_total_score({"0": "3", "4": "2"}, 9) == 5


def test_answers_beyond_question_count_ignored():
    assert calculate_total_score({"0": "1", "9": "3"}, 9) == 1


# =====================================================================
# Severity bands
# =====================================================================


@pytest.mark.parametrize("total, label", [
    (0, "Minimal"), (4, "Minimal"), (5, "Mild"), (9, "Mild"), (10, "Moderate"),
    (14, "Moderate"), (15, "Moderately Severe"), (19, "Moderately Severe"),
    (20, "Severe"), (27, "Severe"),
])
def test_phq9_bands(total, label):
    assert classify_severity(total, PHQ9_THRESHOLDS) == label


@pytest.mark.parametrize("total, label", [
    (13, "Minimal"), (14, "Mild"), (19, "Mild"), (20, "Moderate"),
    (28, "Moderate"), (29, "Severe"), (63, "Severe"), (64, "Extreme"),
])
def test_bdi_bands(total, label):
    assert classify_severity(total, BDI_THRESHOLDS) == label


def test_table_without_catch_all_uses_top_label():
    assert classify_severity(50, [(10, "Low"), (20, "High")]) == "High"


# =====================================================================
# Rule-table driven scoring
# =====================================================================


def test_yaml_bands_match_constant_tables(rules):
    """The YAML severity bands and the module constants agree."""
    for assessment_id, table in (("bdi", BDI_THRESHOLDS), ("phq9", PHQ9_THRESHOLDS)):
        bands = [(b.max, b.label) for b in rules.get_assessment(assessment_id).severity]
        assert bands == list(table), f"{assessment_id} bands drifted: {bands}"


def test_score_phq9_all_threes(rules):
    score = score_assessment(rules.get_assessment("phq9"), {str(i): "3" for i in range(9)})
    assert score.total_score == 27
    assert score.max_score == 27
    assert score.severity == "Severe"


def test_score_bdi_minimal(rules):
    responses = {str(i): "0" for i in range(21)}
    responses["15"] = "1b"
    score = score_assessment(rules.get_assessment("bdi"), responses)
    assert (score.assessment, score.total_score, score.severity) == ("bdi", 1, "Minimal")


@pytest.mark.parametrize("assessment_id, count", [("bdi", 21), ("phq9", 9)])
def test_score_all_zero(rules, assessment_id, count):
    score = score_assessment(
        rules.get_assessment(assessment_id), {str(i): "0" for i in range(count)},
    )
    assert score.total_score == 0, f"{assessment_id} all-zero scored {score.total_score}"
    assert score.severity == "Minimal"


def test_score_bdi_all_maximum(rules):
    responses = {str(i): "3" for i in range(21)}
    responses["15"] = "3a"
    responses["17"] = "3b"
    score = score_assessment(rules.get_assessment("bdi"), responses)
    assert score.total_score == 63
    assert score.max_score == 63
    assert score.severity == "Severe"
