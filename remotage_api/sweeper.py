"""
Periodic removal of leads older than the configured time-to-live.

The API process runs a ``LeadExpirySweeper`` thread; ``main`` runs the same
sweep as a standalone daemon for deployments that keep it out of the web
workers.
"""

from __future__ import annotations

import argparse
import logging
import threading

from remotage_api.config import get_settings
from remotage_api.db import DbClient
from remotage_api.dependencies import get_db_client

logger = logging.getLogger(__name__)


def sweep_expired_leads(db: DbClient, ttl_seconds: float) -> int:
    removed = db.delete_expired_leads(ttl_seconds)
    if removed:
        logger.info("Removed %d expired leads", removed)
    return removed


class LeadExpirySweeper:
    """Background thread that sweeps expired leads on a fixed interval."""

    def __init__(self, db: DbClient, ttl_seconds: float, interval_seconds: float):
        self.db = db
        self.ttl_seconds = ttl_seconds
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> int:
        try:
            return sweep_expired_leads(self.db, self.ttl_seconds)
        except Exception as exc:
            logger.exception("Lead sweep failed: %s", exc)
            return 0

    def run_forever(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="lead-expiry-sweeper", daemon=True
        )
        self._thread.start()
        logger.info(
            "Lead sweeper started (ttl=%ss, interval=%ss)",
            self.ttl_seconds,
            self.interval_seconds,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Expire old Remotage leads")
    parser.add_argument(
        "--interval-seconds",
        type=float,
        default=settings.lead_sweep_interval_seconds,
        help="Seconds between sweeps",
    )
    parser.add_argument(
        "--ttl-seconds",
        type=float,
        default=settings.lead_ttl_seconds,
        help="Age after which a lead is deleted",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    sweeper = LeadExpirySweeper(
        get_db_client(),
        ttl_seconds=args.ttl_seconds,
        interval_seconds=args.interval_seconds,
    )
    if args.once:
        sweeper.run_once()
        return 0

    try:
        sweeper.run_forever()
    except KeyboardInterrupt:
        logger.info("Sweeper interrupted, exiting")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
