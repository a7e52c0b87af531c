"""OfflineQueue — durable best-effort delivery of submissions that could not go out.

Pending submissions are kept as one JSON list under
``pending_form_submissions`` in the local key-value store, in enqueue
order.  A drain pass walks the list while online, removing entries whose
resubmission succeeds and bumping the retry count of the rest.  Entries
are never discarded automatically: once an entry's retry count reaches
the alert threshold (3) the user is told, but it stays eligible.

The queue also keeps per-form snapshots of in-progress field values under
``offline_form_data_<form_type>`` so a screen can restore what was typed.

Usage::

    queue = OfflineQueue(store, connectivity)
    await queue.enqueue(FormType.BDI, form_data)

    async def resubmit(entry: PendingSubmission) -> bool:
        ...

    report = await queue.drain(resubmit)
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from intake_forms.constants import (
    PENDING_SUBMISSIONS_KEY,
    RETRY_ALERT_THRESHOLD,
    SNAPSHOT_PREFIX,
)
from intake_forms.errors import ConnectivityError
from intake_forms.interfaces import ConnectivityService, KeyValueStore
from intake_forms.models.codes import FormType, PendingStage
from intake_forms.models.submission import DrainReport, PendingSubmission
from intake_forms.storage import Namespace

logger = logging.getLogger(__name__)

# Resubmits one entry; True (or no exception) means delivered
SubmitFn = Callable[[PendingSubmission], Awaitable[bool]]
# Called with each entry whose retry count reached the alert threshold
AlertFn = Callable[[PendingSubmission], Any]


class OfflineQueue:
    """FIFO list of pending submissions plus per-form snapshots.

    Args:
        store: local key-value store shared with the session manager.
        connectivity: decides whether a drain pass may run.
        alert_threshold: retry count at which an entry is reported.
        on_alert: optional callback (sync or async) for reported entries.
    """

    def __init__(
        self,
        store: KeyValueStore,
        connectivity: ConnectivityService,
        *,
        alert_threshold: int = RETRY_ALERT_THRESHOLD,
        on_alert: AlertFn | None = None,
    ) -> None:
        self._store = store
        self._connectivity = connectivity
        self._snapshots = Namespace(store, SNAPSHOT_PREFIX)
        self._alert_threshold = alert_threshold
        self._on_alert = on_alert
        self._last_id = 0
        # Held across every read-modify-write of the pending list
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Pending list
    # ------------------------------------------------------------------

    async def pending(self) -> list[PendingSubmission]:
        """All pending submissions in enqueue order."""
        raw = await self._store.get(PENDING_SUBMISSIONS_KEY)
        if not raw:
            return []
        return [PendingSubmission.model_validate(item) for item in json.loads(raw)]

    async def _save(self, items: list[PendingSubmission]) -> None:
        payload = [item.model_dump(mode="json") for item in items]
        await self._store.set(PENDING_SUBMISSIONS_KEY, json.dumps(payload))

    def _next_id(self, existing: list[PendingSubmission]) -> str:
        """Creation time in ms, bumped past any id already handed out."""
        floor = max([self._last_id, *(int(p.id) for p in existing if p.id.isdigit())])
        self._last_id = max(int(time.time() * 1000), floor + 1)
        return str(self._last_id)

    async def enqueue(
        self,
        form_type: FormType,
        form_data: dict[str, Any],
        *,
        submission_id: str | None = None,
        stage: PendingStage = PendingStage.FULL,
    ) -> PendingSubmission:
        """Append a submission with ``retry_count = 0``.

        Besides the orchestrator's own re-queue of failed record writes,
        callers holding a submission that could not go out enqueue it here
        as a ``full`` entry; a drain pass replays it through both channels.
        """
        async with self._lock:
            items = await self.pending()
            entry = PendingSubmission(
                id=self._next_id(items),
                form_type=form_type,
                form_data=form_data,
                timestamp=datetime.now(timezone.utc),
                submission_id=submission_id or str(uuid.uuid4()),
                stage=stage,
            )
            items.append(entry)
            await self._save(items)
        logger.info(
            "Queued %s submission %s (stage=%s, pending=%d)",
            form_type.value, entry.id, stage.value, len(items),
        )
        return entry

    async def remove(self, entry_id: str) -> bool:
        """Drop an entry; returns False if it was not queued."""
        async with self._lock:
            items = await self.pending()
            kept = [p for p in items if p.id != entry_id]
            if len(kept) == len(items):
                return False
            await self._save(kept)
            return True

    async def increment_retry(self, entry_id: str) -> PendingSubmission | None:
        """Bump an entry's retry count and return the updated entry."""
        async with self._lock:
            items = await self.pending()
            updated = None
            for i, item in enumerate(items):
                if item.id == entry_id:
                    updated = item.model_copy(update={"retry_count": item.retry_count + 1})
                    items[i] = updated
                    break
            if updated is not None:
                await self._save(items)
            return updated

    async def is_online(self) -> bool:
        return await self._connectivity.is_online()

    # ------------------------------------------------------------------
    # Drain
    # ------------------------------------------------------------------

    async def drain(self, submit_fn: SubmitFn) -> DrainReport:
        """Resubmit every pending entry, oldest first, while online.

        A ``submit_fn`` that returns False or raises counts as a failed
        retry.  ``ConnectivityError`` ends the pass early without touching
        the remaining entries.
        """
        if not await self.is_online():
            remaining = len(await self.pending())
            logger.info("Offline; skipping drain of %d pending submissions", remaining)
            return DrainReport(online=False, remaining=remaining)

        report = DrainReport(online=True)
        for entry in await self.pending():
            try:
                delivered = await submit_fn(entry)
            except ConnectivityError:
                logger.info("Lost connectivity while draining; stopping at %s", entry.id)
                report.online = False
                break
            except Exception:
                logger.warning(
                    "Retry of %s submission %s raised", entry.form_type.value, entry.id,
                    exc_info=True,
                )
                delivered = False

            if delivered is not False:
                await self.remove(entry.id)
                report.delivered.append(entry.id)
                continue

            updated = await self.increment_retry(entry.id)
            report.failed.append(entry.id)
            if updated is not None and updated.retry_count >= self._alert_threshold:
                report.alerted.append(entry.id)
                await self._alert(updated)

        report.remaining = len(await self.pending())
        logger.info(
            "Drain complete: delivered=%d, failed=%d, remaining=%d",
            len(report.delivered), len(report.failed), report.remaining,
        )
        return report

    async def _alert(self, entry: PendingSubmission) -> None:
        logger.warning(
            "%s submission %s has failed %d retries and is still pending",
            entry.form_type.display_name, entry.id, entry.retry_count,
        )
        if self._on_alert is not None:
            result = self._on_alert(entry)
            if inspect.isawaitable(result):
                await result

    # ------------------------------------------------------------------
    # Form snapshots
    # ------------------------------------------------------------------

    async def save_snapshot(
        self, form_type: FormType, form_data: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge ``form_data`` into the stored snapshot and stamp it."""
        merged = {**(await self.load_snapshot(form_type) or {}), **form_data}
        merged["lastUpdated"] = datetime.now(timezone.utc).isoformat()
        await self._snapshots.set(form_type.value, json.dumps(merged))
        return merged

    async def load_snapshot(self, form_type: FormType) -> dict[str, Any] | None:
        raw = await self._snapshots.get(form_type.value)
        return json.loads(raw) if raw else None

    async def clear_snapshot(self, form_type: FormType) -> None:
        await self._snapshots.remove(form_type.value)

    async def clear(self) -> None:
        """Remove every snapshot and the pending list."""
        async with self._lock:
            keys = [f"{SNAPSHOT_PREFIX}{k}" for k in await self._snapshots.keys()]
            await self._store.multi_remove([*keys, PENDING_SUBMISSIONS_KEY])
        logger.info("Cleared offline queue and %d form snapshots", len(keys))
