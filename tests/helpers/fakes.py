"""In-memory collaborators for SDK tests.

``FakeRemoteStore`` keeps rows per table, assigns ids the way the database
does, honours ``submission_id`` idempotency, and can be told to fail
specific operations.  ``FakeNotifier`` records every send and returns a
configurable result.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from intake_forms.errors import RemoteStoreError
from intake_forms.interfaces import ConnectivityService, Notifier, RemoteStore
from intake_forms.models.codes import FormType
from intake_forms.models.submission import NetworkState, NotificationResult


class FakeRemoteStore(RemoteStore):
    """Dict-of-lists remote store with failure injection.

    ``fail_on`` holds ``(operation, table)`` pairs; ``"*"`` matches any
    table.  Each matching call raises :class:`RemoteStoreError`.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.fail_on: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _maybe_fail(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        if (operation, table) in self.fail_on or (operation, "*") in self.fail_on:
            raise RemoteStoreError(table, operation, "injected failure")

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, Any]) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in filters.items())

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("insert", table)
        submission_id = record.get("submission_id")
        if submission_id:
            for row in self.rows(table):
                if row.get("submission_id") == submission_id:
                    return dict(row)
        row = {
            "id": str(uuid.uuid4()),
            "created_at": datetime.now(timezone.utc).isoformat(),
            **record,
        }
        self.rows(table).append(row)
        return dict(row)

    async def update(
        self, table: str, filters: dict[str, Any], patch: dict[str, Any],
    ) -> int:
        self._maybe_fail("update", table)
        count = 0
        for row in self.rows(table):
            if self._matches(row, filters):
                row.update(patch)
                count += 1
        return count

    async def select_one(
        self, table: str, filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        self._maybe_fail("select", table)
        for row in self.rows(table):
            if self._matches(row, filters):
                return dict(row)
        return None


class FakeNotifier(Notifier):
    """Records ``(form_type, form_data)`` per send."""

    def __init__(self, result: NotificationResult | None = None) -> None:
        self.result = result or NotificationResult(success=True)
        self.sent: list[tuple[FormType, dict[str, Any]]] = []

    async def send(self, form_type: FormType, form_data: dict[str, Any]) -> NotificationResult:
        self.sent.append((form_type, dict(form_data)))
        return self.result


class FakeConnectivity(ConnectivityService):
    """Toggleable connectivity; counts probes."""

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.probes = 0

    async def fetch(self) -> NetworkState:
        self.probes += 1
        return NetworkState(is_connected=self.online, is_internet_reachable=self.online)
