"""PatientSessionManager — per-device pseudo-identity for form submissions.

A device starts with no session.  The first form screen creates a
``local_only`` session holding a temporary id (``TMP_<ms>_<RANDOM>``);
the first submission verifies it against the ``patient_sessions`` table
(creating the row when absent); completing the demographic sheet converts
it into a registered patient.

    no_session -> local_only -> verified -> converted

Remote failures raise :class:`SessionError` from every operation.  A
missing remote row is not a failure: it is recreated under the same
temporary id, so form rows already written stay attributable.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from typing import Any

from intake_forms.constants import (
    PATIENTS_TABLE,
    SESSION_KEY,
    SESSIONS_TABLE,
    TEMP_ID_PREFIX,
    TEMP_ID_SUFFIX_LENGTH,
)
from intake_forms.errors import RemoteStoreError, SessionError
from intake_forms.interfaces import KeyValueStore, RemoteStore
from intake_forms.models.codes import FormType, SessionState
from intake_forms.models.submission import PatientSession

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class PatientSessionManager:
    """Owns the local session record and its remote counterpart.

    Args:
        store: local key-value store (session JSON under ``patient_session_id``).
        remote: remote record store holding ``patient_sessions`` and ``patients``.
    """

    def __init__(self, store: KeyValueStore, remote: RemoteStore) -> None:
        self._store = store
        self._remote = remote
        # Serialises writes of the local session record
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    @staticmethod
    def generate_temporary_id() -> str:
        """``TMP_<epoch-ms>_<6 base36 chars>``, upper-cased."""
        suffix = "".join(secrets.choice(_BASE36) for _ in range(TEMP_ID_SUFFIX_LENGTH))
        return f"{TEMP_ID_PREFIX}_{int(time.time() * 1000)}_{suffix}".upper()

    async def _load(self) -> PatientSession | None:
        raw = await self._store.get(SESSION_KEY)
        if not raw:
            return None
        return PatientSession.model_validate_json(raw)

    async def _save(self, session: PatientSession) -> PatientSession:
        async with self._lock:
            await self._store.set(SESSION_KEY, session.model_dump_json())
        return session

    async def state(self) -> SessionState:
        session = await self._load()
        return session.state if session else SessionState.NO_SESSION

    async def get_or_create_session(self) -> PatientSession:
        """Return the local session, creating a ``local_only`` one if needed.

        Never touches the remote store.
        """
        async with self._lock:
            session = await self._load()
            if session is not None:
                return session
            session = PatientSession(temporary_id=self.generate_temporary_id())
            await self._store.set(SESSION_KEY, session.model_dump_json())
        logger.info("Created local patient session %s", session.temporary_id)
        return session

    # ------------------------------------------------------------------
    # Remote verification
    # ------------------------------------------------------------------

    async def verify_session(self) -> PatientSession:
        """Ensure the remote ``patient_sessions`` row exists for this device."""
        session = await self.get_or_create_session()
        temporary_id = session.temporary_id
        try:
            row = await self._remote.select_one(
                SESSIONS_TABLE, {"temporary_id": temporary_id},
            )
            if row is None:
                row = await self._remote.insert(
                    SESSIONS_TABLE, {"temporary_id": temporary_id, "is_converted": False},
                )
                if session.remote_record_id:
                    logger.warning(
                        "Remote session %s was missing; recreated for %s",
                        session.remote_record_id, temporary_id,
                    )
                else:
                    logger.info("Registered session %s remotely", temporary_id)
        except RemoteStoreError as exc:
            raise SessionError(f"Could not verify session {temporary_id}: {exc}") from exc

        is_converted = bool(row.get("is_converted"))
        patient_id = row.get("patient_id")
        updated = session.model_copy(
            update={
                "remote_record_id": str(row["id"]),
                "is_converted": is_converted,
                "patient_id": str(patient_id) if patient_id else None,
                "state": SessionState.CONVERTED if is_converted else SessionState.VERIFIED,
            }
        )
        if updated != session:
            await self._save(updated)
        return updated

    async def get_current_session_id(self) -> str:
        """Verified temporary id for the current device."""
        session = await self.verify_session()
        return session.temporary_id

    async def resolve_remote_id(self) -> str:
        """``patient_sessions.id`` that form rows reference."""
        session = await self.verify_session()
        return session.remote_record_id

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    async def convert_to_patient(self, patient_record: dict[str, Any]) -> dict[str, Any]:
        """Create the patient row and link this session's form rows to it.

        The patient insert and the session update must succeed; re-linking
        the form tables is best-effort and only logged per table.

        Returns:
            The stored ``patients`` row.
        """
        session = await self.verify_session()
        try:
            patient = await self._remote.insert(PATIENTS_TABLE, patient_record)
            await self._remote.update(
                SESSIONS_TABLE,
                {"temporary_id": session.temporary_id},
                {"patient_id": patient["id"], "is_converted": True},
            )
        except RemoteStoreError as exc:
            raise SessionError(
                f"Could not convert session {session.temporary_id}: {exc}"
            ) from exc

        await self._relink_forms(session.remote_record_id, patient["id"])
        await self._save(
            session.model_copy(
                update={
                    "patient_id": str(patient["id"]),
                    "is_converted": True,
                    "state": SessionState.CONVERTED,
                }
            )
        )
        logger.info("Converted session %s to patient %s", session.temporary_id, patient["id"])
        return patient

    async def _relink_forms(self, remote_session_id: str, patient_id: Any) -> None:
        tables = [ft.table for ft in FormType if ft.table]
        results = await asyncio.gather(
            *(
                self._remote.update(
                    table, {"patient_session_id": remote_session_id}, {"patient_id": patient_id},
                )
                for table in tables
            ),
            return_exceptions=True,
        )
        for table, result in zip(tables, results):
            if isinstance(result, RemoteStoreError):
                logger.warning("Could not link %s rows to patient %s: %s", table, patient_id, result)
            elif isinstance(result, BaseException):
                raise result
            elif result:
                logger.debug("Linked %d %s rows to patient %s", result, table, patient_id)

    # ------------------------------------------------------------------
    # Inspection & reset
    # ------------------------------------------------------------------

    async def get_session_info(self) -> dict[str, Any]:
        """Local session plus its remote row and, once converted, the patient."""
        session = await self._load()
        if session is None:
            return {"state": SessionState.NO_SESSION, "session": None, "record": None, "patient": None}

        try:
            record = await self._remote.select_one(
                SESSIONS_TABLE, {"temporary_id": session.temporary_id},
            )
            patient = None
            if record and record.get("patient_id"):
                patient = await self._remote.select_one(
                    PATIENTS_TABLE, {"id": record["patient_id"]},
                )
        except RemoteStoreError as exc:
            raise SessionError(
                f"Could not load session {session.temporary_id}: {exc}"
            ) from exc
        return {"state": session.state, "session": session, "record": record, "patient": patient}

    async def clear_session(self) -> None:
        """Forget the local session; the remote rows are left in place."""
        await self._store.remove(SESSION_KEY)
        logger.info("Cleared local patient session")
