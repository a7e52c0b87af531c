"""PatientSessionManager tests — temporary ids, verification, conversion.

Session lifecycle: no_session -> local_only -> verified -> converted.
Remote failures surface as SessionError; a missing remote row is
recreated under the same temporary id.
"""

import asyncio
import re

import pytest

from helpers.fakes import FakeRemoteStore
from intake_forms.constants import SESSION_KEY
from intake_forms.errors import SessionError
from intake_forms.models.codes import SessionState
from intake_forms.session import PatientSessionManager
from intake_forms.storage import JsonFileStore, MemoryStore

TEMP_ID_RE = re.compile(r"^TMP_\d{13}_[0-9A-Z]{6}$")


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def sessions(store, remote):
    return PatientSessionManager(store, remote)


# =====================================================================
# Local identity
# =====================================================================


class TestLocalSession:
    def test_temporary_id_format(self):
        ids = {PatientSessionManager.generate_temporary_id() for _ in range(50)}
        for temp_id in ids:
            assert TEMP_ID_RE.match(temp_id), f"Bad temporary id: {temp_id}"
        assert len(ids) > 1, "Temporary ids should not repeat"

    @pytest.mark.asyncio
    async def test_no_session_then_local_only(self, sessions, remote):
        assert await sessions.state() == SessionState.NO_SESSION
        session = await sessions.get_or_create_session()
        assert session.state == SessionState.LOCAL_ONLY
        assert await sessions.state() == SessionState.LOCAL_ONLY
        assert remote.calls == [], "Creating a local session must not touch the remote store"

    @pytest.mark.asyncio
    async def test_same_session_returned(self, sessions, store):
        first = await sessions.get_or_create_session()
        second = await sessions.get_or_create_session()
        assert first.temporary_id == second.temporary_id
        assert await store.get(SESSION_KEY) is not None

    @pytest.mark.asyncio
    async def test_concurrent_first_access_shares_one_session(self, remote, tmp_path):
        sessions = PatientSessionManager(JsonFileStore(tmp_path / "state.json"), remote)
        created = await asyncio.gather(*(sessions.get_or_create_session() for _ in range(5)))
        ids = {s.temporary_id for s in created}
        assert len(ids) == 1, f"Concurrent callers got different sessions: {ids}"
        assert (await sessions.get_or_create_session()).temporary_id in ids

    @pytest.mark.asyncio
    async def test_clear_session(self, sessions):
        first = await sessions.get_or_create_session()
        await sessions.clear_session()
        assert await sessions.state() == SessionState.NO_SESSION
        second = await sessions.get_or_create_session()
        assert second.temporary_id != first.temporary_id


# =====================================================================
# Remote verification
# =====================================================================


class TestVerify:
    @pytest.mark.asyncio
    async def test_creates_remote_row_once(self, sessions, remote):
        session = await sessions.verify_session()
        again = await sessions.verify_session()

        rows = remote.rows("patient_sessions")
        assert len(rows) == 1
        assert rows[0]["temporary_id"] == session.temporary_id
        assert rows[0]["is_converted"] is False
        assert session.state == SessionState.VERIFIED
        assert session.remote_record_id == rows[0]["id"]
        assert again.remote_record_id == session.remote_record_id

    @pytest.mark.asyncio
    async def test_missing_remote_row_recreated(self, sessions, remote):
        session = await sessions.verify_session()
        remote.tables["patient_sessions"] = []

        recreated = await sessions.verify_session()

        assert recreated.temporary_id == session.temporary_id
        assert recreated.remote_record_id != session.remote_record_id
        assert len(remote.rows("patient_sessions")) == 1

    @pytest.mark.asyncio
    async def test_remote_failure_raises_session_error(self, sessions, remote):
        remote.fail_on.add(("select", "patient_sessions"))
        with pytest.raises(SessionError):
            await sessions.verify_session()
        assert await sessions.state() == SessionState.LOCAL_ONLY

    @pytest.mark.asyncio
    async def test_current_ids(self, sessions, remote):
        temp_id = await sessions.get_current_session_id()
        remote_id = await sessions.resolve_remote_id()
        assert remote.rows("patient_sessions")[0]["temporary_id"] == temp_id
        assert remote.rows("patient_sessions")[0]["id"] == remote_id

    @pytest.mark.asyncio
    async def test_picks_up_remote_conversion(self, sessions, remote):
        await sessions.verify_session()
        remote.rows("patient_sessions")[0].update(is_converted=True, patient_id="p-1")
        session = await sessions.verify_session()
        assert session.state == SessionState.CONVERTED
        assert session.patient_id == "p-1"


# =====================================================================
# Conversion
# =====================================================================


class TestConvert:
    @pytest.mark.asyncio
    async def test_links_session_and_forms(self, sessions, remote):
        session = await sessions.verify_session()
        remote.rows("phq9_form").append(
            {"id": "f-1", "patient_session_id": session.remote_record_id, "patient_id": None}
        )
        remote.rows("bdi_form").append(
            {"id": "f-2", "patient_session_id": "someone-else", "patient_id": None}
        )

        patient = await sessions.convert_to_patient({"first_name": "Mary", "last_name": "Smith"})

        session_row = remote.rows("patient_sessions")[0]
        assert session_row["is_converted"] is True
        assert session_row["patient_id"] == patient["id"]
        assert remote.rows("phq9_form")[0]["patient_id"] == patient["id"]
        assert remote.rows("bdi_form")[0]["patient_id"] is None
        assert await sessions.state() == SessionState.CONVERTED

    @pytest.mark.asyncio
    async def test_relink_failure_is_not_fatal(self, sessions, remote):
        await sessions.verify_session()
        remote.fail_on.add(("update", "bdi_form"))
        await sessions.convert_to_patient({"first_name": "Mary", "last_name": "Smith"})
        assert await sessions.state() == SessionState.CONVERTED

    @pytest.mark.asyncio
    async def test_patient_insert_failure(self, sessions, remote):
        await sessions.verify_session()
        remote.fail_on.add(("insert", "patients"))
        with pytest.raises(SessionError):
            await sessions.convert_to_patient({"first_name": "Mary"})
        assert await sessions.state() == SessionState.VERIFIED


# =====================================================================
# Inspection
# =====================================================================


class TestSessionInfo:
    @pytest.mark.asyncio
    async def test_no_session(self, sessions):
        info = await sessions.get_session_info()
        assert info["state"] == SessionState.NO_SESSION
        assert info["session"] is None

    @pytest.mark.asyncio
    async def test_converted_session_includes_patient(self, sessions):
        await sessions.verify_session()
        patient = await sessions.convert_to_patient({"first_name": "Mary", "last_name": "Smith"})
        info = await sessions.get_session_info()
        assert info["state"] == SessionState.CONVERTED
        assert info["record"]["is_converted"] is True
        assert info["patient"]["id"] == patient["id"]

    @pytest.mark.asyncio
    async def test_remote_failure(self, sessions, remote):
        await sessions.get_or_create_session()
        remote.fail_on.add(("select", "*"))
        with pytest.raises(SessionError):
            await sessions.get_session_info()
