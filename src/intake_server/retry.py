"""Offline-queue retry CLI — ``intake-retry``.

Drains the pending-submission list once (or repeatedly with ``--loop``)
using the same state file and database as the server.  Intended for cron
jobs on devices that do not run the server continuously.

Examples::

    # One pass over the queue
    uv run intake-retry

    # Keep retrying every 5 minutes
    uv run intake-retry --loop --interval 300

    # Show what is pending without sending anything
    uv run intake-retry --list
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

logger = logging.getLogger(__name__)


async def run_retry(*, loop: bool = False, interval: float | None = None, list_only: bool = False) -> int:
    """Drain the queue and return the number of entries still pending.

    Builds its own components and disposes the database engine on exit.
    """
    # Lazy imports to avoid loading DB machinery at module import time
    from intake_db.engine import dispose_engine
    from intake_forms.config import load_settings

    from intake_server.components import build_components

    settings = load_settings()
    components = build_components(settings)
    interval = interval if interval is not None else settings.retry_interval

    try:
        if list_only:
            pending = await components.queue.pending()
            for entry in pending:
                print(
                    f"{entry.id}  {entry.form_type.value:<20} stage={entry.stage.value:<6} "
                    f"retries={entry.retry_count}  queued={entry.timestamp.isoformat()}"
                )
            return len(pending)

        while True:
            report = await components.orchestrator.retry_pending()
            logger.info(
                "Retry pass: online=%s delivered=%d failed=%d remaining=%d",
                report.online, len(report.delivered), len(report.failed), report.remaining,
            )
            if not loop:
                return report.remaining
            await asyncio.sleep(interval)
    finally:
        await components.orchestrator.aclose()
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``intake-retry``."""
    parser = argparse.ArgumentParser(
        description="Retry intake submissions held in the offline queue.",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep retrying until interrupted.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between passes with --loop (default: INTAKE_RETRY_INTERVAL).",
    )
    parser.add_argument(
        "--list",
        dest="list_only",
        action="store_true",
        help="Print pending submissions and exit.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        remaining = asyncio.run(
            run_retry(loop=args.loop, interval=args.interval, list_only=args.list_only)
        )
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        logger.error("Retry failed: %s", exc)
        sys.exit(1)

    logger.info("%d submissions still pending", remaining)
    sys.exit(0)


if __name__ == "__main__":
    cli()
