"""
Run the Remotage API under uvicorn.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn
from sqlalchemy.engine import make_url

from remotage_api.config import get_settings

logger = logging.getLogger(__name__)


def _describe_database(database_url: str | None) -> str:
    if not database_url:
        return "in-memory"
    return make_url(database_url).render_as_string(hide_password=True)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Remotage API server")
    parser.add_argument("--host", type=str, default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (dev only)"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    database = (
        "in-memory"
        if settings.use_in_memory_backends
        else _describe_database(settings.database_url)
    )
    logger.info("Remotage server running on port %d", args.port)
    logger.info("API base: http://localhost:%d%s", args.port, settings.api_prefix)
    logger.info("Database: %s", database)

    uvicorn.run(
        "remotage_api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
