"""Local key-value store tests — memory, JSON file, and prefixed views."""

import json

import pytest

from intake_forms.storage import JsonFileStore, MemoryStore, Namespace


@pytest.mark.asyncio
async def test_memory_store_roundtrip():
    store = MemoryStore({"a": "1"})
    await store.set("b", "2")
    assert await store.get("a") == "1"
    await store.multi_remove(["a", "missing"])
    assert await store.keys() == ["b"]


@pytest.mark.asyncio
async def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "state.json"
    store = JsonFileStore(path)
    await store.set("patient_session_id", '{"temporary_id": "TMP_1_ABCDEF"}')

    reopened = JsonFileStore(path)
    assert await reopened.get("patient_session_id") == '{"temporary_id": "TMP_1_ABCDEF"}'
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "patient_session_id": '{"temporary_id": "TMP_1_ABCDEF"}',
    }


@pytest.mark.asyncio
async def test_json_file_store_remove(tmp_path):
    store = JsonFileStore(tmp_path / "state.json")
    await store.set("k", "v")
    await store.remove("k")
    assert await store.get("k") is None
    assert list(tmp_path.glob("*.tmp")) == [], "temp files should not be left behind"


@pytest.mark.asyncio
async def test_json_file_store_rejects_non_object(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        await JsonFileStore(path).get("k")


@pytest.mark.asyncio
async def test_namespace_prefixes_keys():
    base = MemoryStore({"other": "x"})
    ns = Namespace(base, "offline_form_data_")
    await ns.set("bdi", "{}")
    assert await base.get("offline_form_data_bdi") == "{}"
    assert await ns.keys() == ["bdi"]
    await ns.multi_remove(["bdi"])
    assert await base.keys() == ["other"]


@pytest.mark.asyncio
async def test_json_file_store_sees_writes_from_another_instance(tmp_path):
    path = tmp_path / "state.json"
    server = JsonFileStore(path)
    cli = JsonFileStore(path)
    await server.set("pending_form_submissions", "[1]")

    assert await cli.get("pending_form_submissions") == "[1]"
    await cli.set("pending_form_submissions", "[]")
    await server.set("offline_form_data_bdi", "{}")

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["pending_form_submissions"] == "[]", "stale cache was written back"
    assert on_disk["offline_form_data_bdi"] == "{}"
