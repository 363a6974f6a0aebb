#!/usr/bin/env python3
"""
Cleanup Worker Runner

Starts the background sweeper that deletes expired registration sessions
and verification codes.

Usage:
    python start_worker.py          # run forever
    python start_worker.py --once   # single sweep, then exit
"""

import argparse
import asyncio
import sys

from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from shared.logging import get_logger, setup_logging
from workers.cleanup_worker import run_cleanup_loop, run_cleanup_once

log = get_logger(__name__)


async def _run(settings: AppSettings, once: bool) -> None:
    client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri, tz_aware=True)
    db = client[settings.db.db_name]
    try:
        if once:
            await run_cleanup_once(db)
        else:
            await run_cleanup_loop(db, settings.worker.cleanup_interval_seconds)
    finally:
        await client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="AutoSaaz expiry sweeper")
    parser.add_argument("--once", action="store_true", help="run a single sweep")
    args = parser.parse_args()

    settings = AppSettings()
    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
        env=settings.env,
    )

    try:
        asyncio.run(_run(settings, args.once))
    except KeyboardInterrupt:
        log.info("cleanup_worker_interrupted")
    except Exception as e:
        log.error("cleanup_worker_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
