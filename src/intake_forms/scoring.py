"""Assessment scoring — totals and severity bands for BDI and PHQ-9.

Pure functions, no I/O.  The threshold tables here match the
``severity`` bands in ``rulesets/v1/assessments/*.yaml``; the rule store
feeds those bands to :func:`score_assessment` so both stay in one place
at runtime.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from intake_forms.models.schema import AssessmentDefinition
from intake_forms.models.submission import AssessmentScore
from intake_forms.validators import normalize_responses

# (inclusive upper bound, label); ``None`` closes the table.
SeverityThresholds = Sequence[tuple[int | None, str]]

BDI_THRESHOLDS: SeverityThresholds = (
    (13, "Minimal"),
    (19, "Mild"),
    (28, "Moderate"),
    (63, "Severe"),
    (None, "Extreme"),
)

PHQ9_THRESHOLDS: SeverityThresholds = (
    (4, "Minimal"),
    (9, "Mild"),
    (14, "Moderate"),
    (19, "Moderately Severe"),
    (None, "Severe"),
)

# BDI sleep (16th) and appetite (18th) questions use lettered codes
BDI_SPECIAL_INDICES: frozenset[int] = frozenset({15, 17})

_LEADING_DIGITS = re.compile(r"^\d+")


def response_points(code: str, *, special: bool = False) -> int:
    """Points for one response code.

    Lettered codes (``"2b"``) are only legal on special questions, where the
    suffix is stripped before parsing.
    """
    code = code.strip()
    if special:
        match = _LEADING_DIGITS.match(code)
        if match is None:
            raise ValueError(f"Response code has no numeric part: {code!r}")
        return int(match.group())
    return int(code)


def calculate_total_score(
    responses: Any,
    question_count: int,
    special_indices: Iterable[int] = (),
) -> int:
    """Sum every question's points; unanswered questions contribute 0."""
    answered = normalize_responses(responses)
    special = set(special_indices)
    return sum(
        response_points(answered[i], special=i in special)
        for i in range(question_count)
        if i in answered
    )


def classify_severity(total_score: int, thresholds: SeverityThresholds) -> str:
    """Map a total onto the first band whose upper bound covers it."""
    for upper, label in thresholds:
        if upper is None or total_score <= upper:
            return label
    # Tables without a catch-all band fall back to their top label
    return thresholds[-1][1]


def score_assessment(
    definition: AssessmentDefinition, responses: Any,
) -> AssessmentScore:
    """Total and severity for a validated response set."""
    total = calculate_total_score(
        responses, definition.question_count, definition.special_indices,
    )
    thresholds = [(band.max, band.label) for band in definition.severity]
    return AssessmentScore(
        assessment=definition.id,
        total_score=total,
        max_score=definition.max_score,
        severity=classify_severity(total, thresholds),
    )
