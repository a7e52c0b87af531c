"""Wiring of the SDK collaborators shared by the server and the retry CLI."""

from __future__ import annotations

from dataclasses import dataclass

from intake_forms.config import IntakeSettings
from intake_forms.connectivity import HttpConnectivityProbe
from intake_forms.interfaces import KeyValueStore, RemoteStore
from intake_forms.notification import DocumentRenderer, ResendEmailNotifier
from intake_forms.offline_queue import OfflineQueue
from intake_forms.orchestrator import SubmissionOrchestrator
from intake_forms.ruleset import FormRuleStore
from intake_forms.session import PatientSessionManager
from intake_forms.storage import JsonFileStore


@dataclass
class Components:
    rules: FormRuleStore
    store: KeyValueStore
    sessions: PatientSessionManager
    queue: OfflineQueue
    orchestrator: SubmissionOrchestrator


def build_components(
    settings: IntakeSettings,
    *,
    ruleset_dir: str | None = None,
    remote: RemoteStore | None = None,
    store: KeyValueStore | None = None,
) -> Components:
    """Load the rule tables and build every collaborator.

    ``remote`` defaults to the PostgreSQL store and ``store`` to the JSON
    state file named by ``INTAKE_STATE_PATH``.
    """
    rules = FormRuleStore(ruleset_dir=ruleset_dir)
    rules.load()

    if remote is None:
        from intake_db.repository import SqlRemoteStore

        remote = SqlRemoteStore()
    if store is None:
        store = JsonFileStore(settings.state_path)

    probe = HttpConnectivityProbe(settings.probe_url, timeout=settings.probe_timeout)
    sessions = PatientSessionManager(store, remote)
    queue = OfflineQueue(store, probe, alert_threshold=settings.retry_alert_threshold)
    notifier = ResendEmailNotifier(settings, DocumentRenderer(rules))
    orchestrator = SubmissionOrchestrator(
        rules,
        sessions=sessions,
        queue=queue,
        remote=remote,
        notifier=notifier,
        connectivity=probe,
        optimistic_delay=settings.optimistic_delay,
        requeue_failed_writes=settings.requeue_failed_writes,
    )
    return Components(
        rules=rules,
        store=store,
        sessions=sessions,
        queue=queue,
        orchestrator=orchestrator,
    )
