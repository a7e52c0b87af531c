"""Patient session endpoints — inspect, reset, and convert the device session.

A device holds at most one session.  ``GET /session`` reports its state
and remote rows; ``DELETE /session`` forgets it locally (remote rows stay);
``POST /session/convert`` links it to a patient record explicitly, which
the demographic-sheet submission otherwise does on its own.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from intake_forms.models.codes import SessionState
from intake_forms.models.submission import PatientSession
from intake_forms.session import PatientSessionManager

from intake_server.dependencies import get_sessions

router = APIRouter(prefix="/session", tags=["session"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class SessionInfo(BaseModel):
    state: SessionState
    session: PatientSession | None = None
    record: dict[str, Any] | None = None
    patient: dict[str, Any] | None = None


class ConvertRequest(BaseModel):
    """Body for POST /session/convert — a ``patients`` row."""
    first_name: str
    last_name: str
    date_of_birth: str | None = None
    gender: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("")
async def get_session(
    sessions: PatientSessionManager = Depends(get_sessions),
) -> SessionInfo:
    """Local session plus its remote row and linked patient."""
    return SessionInfo(**await sessions.get_session_info())


@router.post("/verify")
async def verify_session(
    sessions: PatientSessionManager = Depends(get_sessions),
) -> PatientSession:
    """Create the session if needed and register it remotely."""
    return await sessions.verify_session()


@router.delete("", status_code=204)
async def clear_session(
    sessions: PatientSessionManager = Depends(get_sessions),
) -> None:
    await sessions.clear_session()


@router.post("/convert")
async def convert_session(
    body: ConvertRequest,
    sessions: PatientSessionManager = Depends(get_sessions),
) -> dict[str, Any]:
    """Create the patient row and link this session's forms to it."""
    return await sessions.convert_to_patient(body.model_dump(exclude_none=True))
