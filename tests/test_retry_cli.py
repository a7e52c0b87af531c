"""intake-retry CLI tests — one pass and list mode with stubbed wiring."""

import pytest

from helpers import forms
from helpers.fakes import FakeConnectivity, FakeNotifier, FakeRemoteStore
from intake_forms.models.codes import FormType
from intake_forms.offline_queue import OfflineQueue
from intake_forms.orchestrator import SubmissionOrchestrator
from intake_forms.session import PatientSessionManager
from intake_forms.storage import MemoryStore
from intake_server import components as components_module
from intake_server.components import Components
from intake_server.retry import run_retry


@pytest.fixture
def wired(rules, monkeypatch):
    store, remote, network = MemoryStore(), FakeRemoteStore(), FakeConnectivity()
    sessions = PatientSessionManager(store, remote)
    queue = OfflineQueue(store, network)
    bundle = Components(
        rules=rules,
        store=store,
        sessions=sessions,
        queue=queue,
        orchestrator=SubmissionOrchestrator(
            rules, sessions=sessions, queue=queue, remote=remote,
            notifier=FakeNotifier(), connectivity=network, optimistic_delay=0,
        ),
    )
    monkeypatch.setattr(components_module, "build_components", lambda settings: bundle)
    return bundle, remote, network


@pytest.mark.asyncio
async def test_single_pass_delivers(wired):
    bundle, remote, _ = wired
    await bundle.queue.enqueue(FormType.PHQ9, forms.phq9())

    remaining = await run_retry()

    assert remaining == 0
    assert len(remote.rows("phq9_form")) == 1


@pytest.mark.asyncio
async def test_offline_pass_keeps_entries(wired):
    bundle, _, network = wired
    network.online = False
    await bundle.queue.enqueue(FormType.PHQ9, forms.phq9())

    assert await run_retry() == 1


@pytest.mark.asyncio
async def test_list_only(wired, capsys):
    bundle, remote, _ = wired
    entry = await bundle.queue.enqueue(FormType.BDI, forms.bdi())

    assert await run_retry(list_only=True) == 1
    out = capsys.readouterr().out
    assert entry.id in out
    assert "bdi" in out
    assert remote.calls == [], "List mode must not send anything"
