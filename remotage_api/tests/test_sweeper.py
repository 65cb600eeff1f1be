import time
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from remotage_api.app import create_app
from remotage_api.config import LEAD_TTL_SECONDS, Settings
from remotage_api.db import InMemoryDbClient, StoreError
from remotage_api.sweeper import LeadExpirySweeper


def _age(db, lead, days):
    db.leads[lead.lead_id].created_at = datetime.now(timezone.utc) - timedelta(days=days)


class LeadExpirySweeperTests(unittest.TestCase):
    def test_run_once_keeps_recent_leads(self):
        db = InMemoryDbClient()
        kept = db.create_lead({"type": "query"})
        expired = db.create_lead({"type": "booking"})
        _age(db, kept, 6)
        _age(db, expired, 8)

        sweeper = LeadExpirySweeper(db, ttl_seconds=LEAD_TTL_SECONDS, interval_seconds=60)
        self.assertEqual(sweeper.run_once(), 1)
        self.assertEqual(list(db.leads), [kept.lead_id])

    def test_run_once_survives_store_errors(self):
        db = MagicMock()
        db.delete_expired_leads.side_effect = StoreError("unreachable")
        sweeper = LeadExpirySweeper(db, ttl_seconds=LEAD_TTL_SECONDS, interval_seconds=60)
        self.assertEqual(sweeper.run_once(), 0)

    def test_background_thread_sweeps(self):
        db = InMemoryDbClient()
        lead = db.create_lead({"type": "query"})
        _age(db, lead, 30)

        sweeper = LeadExpirySweeper(db, ttl_seconds=LEAD_TTL_SECONDS, interval_seconds=0.01)
        sweeper.start()
        try:
            deadline = time.time() + 2
            while db.leads and time.time() < deadline:
                time.sleep(0.01)
        finally:
            sweeper.stop()
        self.assertEqual(db.leads, {})

    def test_app_lifespan_starts_and_stops_sweeper(self):
        db = InMemoryDbClient()
        settings = Settings(enable_lead_sweeper=True, lead_sweep_interval_seconds=0.05)
        with patch("remotage_api.app.get_db_client", return_value=db):
            app = create_app(settings)
            with TestClient(app):
                sweeper = app.state.lead_sweeper
                self.assertIsNotNone(sweeper)
                self.assertIs(sweeper.db, db)
            self.assertIsNone(sweeper._thread)

    def test_app_lifespan_without_sweeper(self):
        app = create_app(Settings(enable_lead_sweeper=False))
        with TestClient(app):
            self.assertIsNone(app.state.lead_sweeper)


if __name__ == "__main__":
    unittest.main()
