"""Abstract ports for the collaborators the intake core depends on.

These ABCs define the contract that concrete implementations must fulfil.
The SDK ships default implementations for each (``storage``,
``connectivity``, ``notification``); the remote store lives in the
``intake_db`` package.

Typical wiring::

    store = JsonFileStore("~/.intake/state.json")
    queue = OfflineQueue(store, HttpConnectivityProbe())
    sessions = PatientSessionManager(store, SqlRemoteStore(factory))
    orchestrator = SubmissionOrchestrator(
        rules, sessions=sessions, queue=queue,
        remote=remote, notifier=ResendEmailNotifier(settings),
        connectivity=probe,
    )
"""

from abc import ABC, abstractmethod
from typing import Any

from intake_forms.models.codes import FormType
from intake_forms.models.submission import NetworkState, NotificationResult


class KeyValueStore(ABC):
    """Durable string key-value persistence for local device state.

    Values are JSON strings; callers serialise and parse them.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` when the key is absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key; absent keys are ignored."""
        ...

    @abstractmethod
    async def multi_remove(self, keys: list[str]) -> None:
        ...

    @abstractmethod
    async def keys(self) -> list[str]:
        ...


class ConnectivityService(ABC):
    """Reports whether the device can currently reach the internet."""

    @abstractmethod
    async def fetch(self) -> NetworkState:
        ...

    async def is_online(self) -> bool:
        """Connected *and* internet reachable."""
        state = await self.fetch()
        return state.is_online


class RemoteStore(ABC):
    """Table-scoped record store behind the intake forms.

    Every method raises :class:`~intake_forms.errors.RemoteStoreError` on
    failure.  Filters are equality matches on column names.
    """

    @abstractmethod
    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it as stored (including its ``id``).

        When the record carries a ``submission_id`` that already exists,
        the existing row is returned instead of inserting a duplicate.
        """
        ...

    @abstractmethod
    async def update(
        self, table: str, filters: dict[str, Any], patch: dict[str, Any],
    ) -> int:
        """Apply ``patch`` to every matching row; return the row count."""
        ...

    @abstractmethod
    async def select_one(
        self, table: str, filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Return the first matching row, or ``None``."""
        ...


class Notifier(ABC):
    """Delivers a submitted form to the clinic (email with a document summary)."""

    @abstractmethod
    async def send(self, form_type: FormType, form_data: dict[str, Any]) -> NotificationResult:
        """Send the form; never raises for delivery failures.

        Failures (including a failed fallback) are reported through
        ``NotificationResult.success`` / ``error``.
        """
        ...
