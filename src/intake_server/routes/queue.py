"""Offline queue endpoints — list and drain pending submissions."""

from fastapi import APIRouter, Depends

from intake_forms.models.submission import DrainReport, PendingSubmission
from intake_forms.offline_queue import OfflineQueue
from intake_forms.orchestrator import SubmissionOrchestrator

from intake_server.dependencies import get_orchestrator, get_queue

router = APIRouter(prefix="/queue", tags=["queue"])


@router.get("")
async def list_pending(
    queue: OfflineQueue = Depends(get_queue),
) -> list[PendingSubmission]:
    """Pending submissions, oldest first."""
    return await queue.pending()


@router.post("/drain")
async def drain_queue(
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
) -> DrainReport:
    """Retry every pending submission now.

    Returns ``online: false`` without touching the queue when the device
    is offline.
    """
    return await orchestrator.retry_pending()
