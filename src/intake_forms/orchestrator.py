"""SubmissionOrchestrator — validate, gate, and dispatch one form submission.

``submit`` runs the synchronous half of the workflow and hands back a
receipt; the two delivery channels run in the background:

  1. Validate (``FormValidationError``, no side effects).
  2. Connectivity pre-flight (``ConnectivityError`` before any remote
     call; nothing is queued).
  3. Verify the patient session (``SessionError`` propagates).
  4. Derive ``totalScore`` / ``severity`` / ``maxScore`` for assessments.
  5. Start dispatch, wait the optimistic delay, return the receipt.

Dispatch sends the email and writes the record concurrently and reports
both flags in a :class:`DispatchOutcome`.  A record write that fails while
online is re-queued as a ``record``-stage pending submission; the email
is never re-sent for it.

Usage::

    orchestrator = SubmissionOrchestrator(
        rules, sessions=sessions, queue=queue, remote=remote,
        notifier=notifier, connectivity=probe,
    )
    receipt = await orchestrator.submit(FormType.PHQ9, fields)
    outcome = await receipt.outcome()
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from intake_forms.errors import (
    ConnectivityError,
    FormValidationError,
    IntakeError,
)
from intake_forms.form_validator import FormValidator
from intake_forms.interfaces import ConnectivityService, Notifier, RemoteStore
from intake_forms.models.codes import FormType, OutcomeStatus, PendingStage
from intake_forms.models.submission import (
    DispatchOutcome,
    DrainReport,
    NotificationResult,
    PatientSession,
    PendingSubmission,
    ValidationResult,
)
from intake_forms.offline_queue import OfflineQueue
from intake_forms.records import RecordBuilder
from intake_forms.ruleset import FormRuleStore
from intake_forms.scoring import score_assessment
from intake_forms.session import PatientSessionManager

logger = logging.getLogger(__name__)


@dataclass
class SubmissionReceipt:
    """Handle for an accepted submission whose delivery runs in the background."""

    form_type: FormType
    submission_id: str
    # Temporary session id; None for email-only forms
    session_id: str | None
    derived: dict[str, Any]
    accepted_at: datetime
    task: asyncio.Task = field(repr=False)

    @property
    def done(self) -> bool:
        return self.task.done()

    async def outcome(self) -> DispatchOutcome:
        """Wait for both delivery channels to settle."""
        return await self.task


class SubmissionOrchestrator:
    """Coordinates validation, session identity, delivery and the offline queue.

    Args:
        rules: a loaded :class:`FormRuleStore`.
        sessions: patient session manager.
        queue: offline queue for record writes that must be retried.
        remote: remote record store.
        notifier: email channel.
        connectivity: pre-flight network check.
        optimistic_delay: seconds ``submit`` waits before returning.
        requeue_failed_writes: queue record writes that fail while online.
    """

    def __init__(
        self,
        rules: FormRuleStore,
        *,
        sessions: PatientSessionManager,
        queue: OfflineQueue,
        remote: RemoteStore,
        notifier: Notifier,
        connectivity: ConnectivityService,
        optimistic_delay: float = 1.0,
        requeue_failed_writes: bool = True,
    ) -> None:
        self._rules = rules
        self._validator = FormValidator(rules)
        self._records = RecordBuilder(rules)
        self._sessions = sessions
        self._queue = queue
        self._remote = remote
        self._notifier = notifier
        self._connectivity = connectivity
        self._optimistic_delay = optimistic_delay
        self._requeue_failed_writes = requeue_failed_writes
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, form_type: FormType | str, fields: Mapping[str, Any]) -> ValidationResult:
        """Validation only; no side effects."""
        return self._validator.validate_form(form_type, fields)

    def derive(self, form_type: FormType | str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Computed fields attached to the submission (assessment score)."""
        definition = self._rules.assessment_for(form_type)
        if definition is None:
            return {}
        check = next(c for c in self._rules.get_form(form_type).checks if c.type == "assessment")
        score = score_assessment(definition, fields.get(check.field))
        return {
            "totalScore": score.total_score,
            "severity": score.severity,
            "maxScore": score.max_score,
        }

    async def submit(
        self, form_type: FormType | str, fields: Mapping[str, Any],
    ) -> SubmissionReceipt:
        """Validate, gate on connectivity, then dispatch in the background.

        Raises:
            FormValidationError: a field failed validation.
            ConnectivityError: the device is offline.
            SessionError: the patient session could not be verified.
        """
        form_type = FormType(form_type)
        result = self.validate(form_type, fields)
        if not result.is_valid:
            logger.info(
                "%s submission rejected: %d invalid fields",
                form_type.value, len(result.errors),
            )
            raise FormValidationError(result)

        if not await self._connectivity.is_online():
            logger.info("%s submission blocked: offline", form_type.value)
            raise ConnectivityError()

        session = None
        if form_type.table is not None:
            session = await self._sessions.verify_session()

        derived = self.derive(form_type, fields)
        form_data = {**fields, **derived}
        submission_id = str(uuid.uuid4())

        task = asyncio.create_task(
            self._dispatch(
                form_type,
                form_data,
                submission_id=submission_id,
                session=session,
                requeue=self._requeue_failed_writes,
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Accepted %s submission %s", form_type.value, submission_id)

        if self._optimistic_delay > 0:
            await asyncio.sleep(self._optimistic_delay)

        return SubmissionReceipt(
            form_type=form_type,
            submission_id=submission_id,
            session_id=session.temporary_id if session else None,
            derived=derived,
            accepted_at=datetime.now(timezone.utc),
            task=task,
        )

    async def defer(
        self, form_type: FormType | str, fields: Mapping[str, Any],
    ) -> PendingSubmission:
        """Validate and hold a submission in the offline queue.

        For callers that captured a form while offline and keep it rather
        than asking the user to submit again.  The entry is replayed through
        both channels on the next drain; its session is resolved then.

        Raises:
            FormValidationError: a field failed validation.
        """
        form_type = FormType(form_type)
        result = self.validate(form_type, fields)
        if not result.is_valid:
            raise FormValidationError(result)
        form_data = {**fields, **self.derive(form_type, fields)}
        entry = await self._queue.enqueue(form_type, form_data, stage=PendingStage.FULL)
        logger.info("Deferred %s submission %s", form_type.value, entry.id)
        return entry

    async def retry_pending(self) -> DrainReport:
        """Drain the offline queue through the dispatch paths."""
        return await self._queue.drain(self._resubmit)

    async def aclose(self) -> None:
        """Wait for in-flight dispatch tasks; nothing is cancelled."""
        if self._tasks:
            logger.info("Waiting for %d in-flight submissions", len(self._tasks))
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch(
        self,
        form_type: FormType,
        form_data: dict[str, Any],
        *,
        submission_id: str,
        session: PatientSession | None,
        requeue: bool,
    ) -> DispatchOutcome:
        """Email and record write concurrently; neither failure stops the other."""
        record_required = form_type.table is not None
        email, record = await asyncio.gather(
            self._notifier.send(form_type, form_data),
            self._write_record(
                form_type, form_data, submission_id=submission_id, session=session,
            ) if record_required else _skipped(),
            return_exceptions=True,
        )

        errors: list[str] = []
        email_sent = isinstance(email, NotificationResult) and email.success
        if isinstance(email, BaseException):
            self._log_channel_error("email", form_type, submission_id, email)
            errors.append(f"email: {email}")
        elif not email.success:
            errors.append(f"email: {email.error}")

        record_saved = record is True
        queued = False
        if isinstance(record, BaseException):
            self._log_channel_error("record", form_type, submission_id, record)
            errors.append(f"record: {record}")
            if requeue:
                try:
                    await self._queue.enqueue(
                        form_type, form_data,
                        submission_id=submission_id, stage=PendingStage.RECORD,
                    )
                    queued = True
                except (OSError, ValueError) as exc:
                    logger.error(
                        "Could not queue %s record for submission %s",
                        form_type.value, submission_id, exc_info=exc,
                    )
                    errors.append(f"queue: {exc}")

        outcome = DispatchOutcome(
            form_type=form_type,
            submission_id=submission_id,
            email_sent=email_sent,
            record_saved=record_saved,
            record_required=record_required,
            queued=queued,
            error="; ".join(errors) or None,
        )
        self._log_outcome(outcome)
        return outcome

    async def _write_record(
        self,
        form_type: FormType,
        form_data: Mapping[str, Any],
        *,
        submission_id: str,
        session: PatientSession | None,
    ) -> bool:
        """Insert the form row; the demographic sheet also converts the session.

        Rows written after conversion carry the patient id directly.
        """
        if session is None:
            session = await self._sessions.verify_session()
        row = self._records.build(
            form_type, form_data,
            patient_session_id=session.remote_record_id,
            submission_id=submission_id,
            patient_id=session.patient_id if session.is_converted else None,
        )
        await self._remote.insert(form_type.table, row)

        if form_type is FormType.PATIENT_DEMOGRAPHICS:
            current = await self._sessions.get_or_create_session()
            if current.is_converted:
                logger.info("Session %s already converted; skipping", current.temporary_id)
            else:
                patient = self._records.build_patient(form_data)
                patient["submission_id"] = submission_id
                await self._sessions.convert_to_patient(patient)
        return True

    async def _resubmit(self, entry: PendingSubmission) -> bool:
        """Replay one queued submission; True when nothing more is owed."""
        if entry.stage is PendingStage.RECORD:
            await self._write_record(
                entry.form_type, entry.form_data,
                submission_id=entry.submission_id, session=None,
            )
            logger.info("Queued record %s written", entry.id)
            return True

        session = None
        if entry.form_type.table is not None:
            session = await self._sessions.verify_session()
        outcome = await self._dispatch(
            entry.form_type,
            entry.form_data,
            submission_id=entry.submission_id,
            session=session,
            requeue=False,
        )
        if outcome.success:
            return True
        if outcome.email_sent:
            # Only the record is still owed
            await self._queue.enqueue(
                entry.form_type, entry.form_data,
                submission_id=entry.submission_id, stage=PendingStage.RECORD,
            )
            return True
        return False

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    @staticmethod
    def _log_channel_error(
        channel: str, form_type: FormType, submission_id: str, exc: BaseException,
    ) -> None:
        if isinstance(exc, IntakeError):
            logger.warning(
                "%s %s failed for submission %s: %s", form_type.value, channel, submission_id, exc,
            )
        else:
            logger.error(
                "%s %s raised for submission %s", form_type.value, channel, submission_id,
                exc_info=exc,
            )

    @staticmethod
    def _log_outcome(outcome: DispatchOutcome) -> None:
        status = outcome.status
        if status is OutcomeStatus.SUCCESS:
            logger.info(
                "%s submission %s delivered", outcome.form_type.value, outcome.submission_id,
            )
        elif status is OutcomeStatus.PARTIAL:
            logger.warning(
                "%s submission %s partially delivered (email_sent=%s, record_saved=%s, queued=%s)",
                outcome.form_type.value, outcome.submission_id,
                outcome.email_sent, outcome.record_saved, outcome.queued,
            )
        else:
            logger.error(
                "%s submission %s failed: %s",
                outcome.form_type.value, outcome.submission_id, outcome.error,
            )


async def _skipped() -> bool:
    return False
