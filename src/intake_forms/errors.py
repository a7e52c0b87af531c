"""Typed error hierarchy for the intake SDK.

Validation and connectivity errors halt a submission before any side
effect.  Remote-store and notification errors are raised by the
collaborators and caught inside background dispatch, where they only
shape the outcome.  ``SessionError`` always propagates; callers decide.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from intake_forms.models.submission import ValidationResult


class IntakeError(Exception):
    """Base class for every error raised by the intake SDK."""


class RulesetError(IntakeError):
    """A rule table is missing, malformed, or references unknown codes."""


class FormValidationError(IntakeError):
    """One or more fields failed validation.

    Carries the full :class:`ValidationResult` so callers can render every
    error at once and scroll to the first offending section.
    """

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        fields = ", ".join(result.errors) or "unknown"
        super().__init__(f"Form validation failed for fields: {fields}")


class ConnectivityError(IntakeError):
    """No network at submission time; the submission was not attempted."""

    def __init__(self, message: str = "No Internet Connection") -> None:
        super().__init__(message)


class RemoteStoreError(IntakeError):
    """A remote insert/update/select failed after connectivity was confirmed."""

    def __init__(self, table: str, operation: str, detail: str) -> None:
        self.table = table
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} on {table} failed: {detail}")


class NotificationError(IntakeError):
    """The email channel failed, including its plain-summary fallback."""


class SessionError(IntakeError):
    """Remote session lookup, creation, or patient conversion failed."""
