"""Form endpoints — rule tables, validation, submission, and drafts.

``POST /forms/{form_type}/submit`` answers 202 once the submission is
accepted; email and record delivery continue in the background and their
outcome is only logged (or queued for retry).  A rejected submission
answers 422 with the full validation result, an offline device 503.
``POST /forms/{form_type}/defer`` validates and parks the submission in
the offline queue instead, for a device that captured it offline.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from intake_forms.models.codes import FormType
from intake_forms.models.schema import AssessmentDefinition, FormDefinition
from intake_forms.models.submission import PendingSubmission, ValidationResult
from intake_forms.offline_queue import OfflineQueue
from intake_forms.orchestrator import SubmissionOrchestrator
from intake_forms.ruleset import FormRuleStore

from intake_server.dependencies import get_orchestrator, get_queue, get_rules

router = APIRouter(prefix="/forms", tags=["forms"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class FormFields(BaseModel):
    """Body for validate / submit / draft: the raw field values."""
    fields: dict[str, Any] = Field(default_factory=dict)


class FormSummary(BaseModel):
    form_type: FormType
    title: str
    display_name: str
    email_only: bool


class FormDetail(BaseModel):
    form: FormDefinition
    assessment: AssessmentDefinition | None = None


class SubmitResponse(BaseModel):
    form_type: FormType
    submission_id: str
    session_id: str | None
    accepted_at: datetime
    # Derived values (assessment score) the UI may display
    derived: dict[str, Any]


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("")
async def list_forms(
    rules: FormRuleStore = Depends(get_rules),
) -> list[FormSummary]:
    """Every form type with its title."""
    return [
        FormSummary(
            form_type=form_type,
            title=rules.get_form(form_type).title,
            display_name=form_type.display_name,
            email_only=form_type.table is None,
        )
        for form_type in FormType
    ]


@router.get("/{form_type}")
async def get_form(
    form_type: FormType,
    rules: FormRuleStore = Depends(get_rules),
) -> FormDetail:
    """Rule table for one form, with its assessment definition if any."""
    return FormDetail(
        form=rules.get_form(form_type),
        assessment=rules.assessment_for(form_type),
    )


@router.post("/{form_type}/validate")
async def validate_form(
    form_type: FormType,
    body: FormFields,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
) -> ValidationResult:
    """Validate without side effects; always 200, check ``is_valid``."""
    return orchestrator.validate(form_type, body.fields)


@router.post("/{form_type}/submit", status_code=202)
async def submit_form(
    form_type: FormType,
    body: FormFields,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
    queue: OfflineQueue = Depends(get_queue),
) -> SubmitResponse:
    """Validate, check connectivity, verify the session, and dispatch.

    The saved draft for this form is discarded once the submission is
    accepted.
    """
    receipt = await orchestrator.submit(form_type, body.fields)
    await queue.clear_snapshot(form_type)
    return SubmitResponse(
        form_type=receipt.form_type,
        submission_id=receipt.submission_id,
        session_id=receipt.session_id,
        accepted_at=receipt.accepted_at,
        derived=receipt.derived,
    )


@router.post("/{form_type}/defer", status_code=202)
async def defer_form(
    form_type: FormType,
    body: FormFields,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
    queue: OfflineQueue = Depends(get_queue),
) -> PendingSubmission:
    """Validate and hold the submission for the next retry pass."""
    entry = await orchestrator.defer(form_type, body.fields)
    await queue.clear_snapshot(form_type)
    return entry


@router.get("/{form_type}/draft")
async def get_draft(
    form_type: FormType,
    queue: OfflineQueue = Depends(get_queue),
) -> dict[str, Any]:
    """Saved partial form; 404 when none exists."""
    snapshot = await queue.load_snapshot(form_type)
    if snapshot is None:
        raise KeyError(f"No draft for {form_type.value}")
    return snapshot


@router.put("/{form_type}/draft")
async def save_draft(
    form_type: FormType,
    body: FormFields,
    queue: OfflineQueue = Depends(get_queue),
) -> dict[str, Any]:
    """Merge fields into the saved draft and return it."""
    return await queue.save_snapshot(form_type, body.fields)


@router.delete("/{form_type}/draft", status_code=204)
async def delete_draft(
    form_type: FormType,
    queue: OfflineQueue = Depends(get_queue),
) -> None:
    await queue.clear_snapshot(form_type)
