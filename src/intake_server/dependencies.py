"""FastAPI dependency injection — SDK singletons stashed on ``app.state``.

The lifespan handler builds one :class:`Components` bundle at startup;
each getter hands out one piece of it.  Tests override these getters with
in-memory fakes.
"""

from fastapi import Request

from intake_forms.offline_queue import OfflineQueue
from intake_forms.orchestrator import SubmissionOrchestrator
from intake_forms.ruleset import FormRuleStore
from intake_forms.session import PatientSessionManager


def get_rules(request: Request) -> FormRuleStore:
    return request.app.state.components.rules


def get_orchestrator(request: Request) -> SubmissionOrchestrator:
    return request.app.state.components.orchestrator


def get_sessions(request: Request) -> PatientSessionManager:
    return request.app.state.components.sessions


def get_queue(request: Request) -> OfflineQueue:
    return request.app.state.components.queue
