"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import threading

from remotage_api.config import get_settings
from remotage_api.db import DbClient, InMemoryDbClient, PostgresDbClient

_db_client: DbClient | None = None
_db_client_lock = threading.Lock()


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    # Sync dependencies run in a thread pool; only one thread builds the client.
    with _db_client_lock:
        if _db_client:
            return _db_client
        settings = get_settings()
        if settings.use_in_memory_backends or not settings.database_url:
            _db_client = InMemoryDbClient()
        else:
            _db_client = PostgresDbClient(settings.database_url)
        return _db_client
