"""
Expiry sweeper for registration sessions and verification codes.

TTL indexes eventually remove expired documents on their own, but MongoDB
runs the TTL monitor only once a minute and gives no feedback; this worker
sweeps on a fixed interval and logs what it removed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from pymongo.asynchronous.database import AsyncDatabase

from errors import UnavailableError
from repositories import RegistrationSessionRepository, VerificationCodeRepository
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


async def run_cleanup_once(
    db: AsyncDatabase, now: Optional[datetime] = None
) -> dict[str, int]:
    """Delete everything already past ``expires_at``; returns per-collection counts."""
    now = now or utcnow()
    sessions = await RegistrationSessionRepository(db).sweep_expired(now)
    codes = await VerificationCodeRepository(db).sweep_expired(now)
    counts = {"registration_sessions": sessions, "verification_codes": codes}
    log.info("cleanup_completed", **counts)
    return counts


async def run_cleanup_loop(
    db: AsyncDatabase,
    interval_seconds: int,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Sweep every *interval_seconds* until *stop_event* is set.

    A failed sweep is logged and retried on the next tick.
    """
    stop_event = stop_event or asyncio.Event()
    log.info("cleanup_worker_started", interval_seconds=interval_seconds)
    while not stop_event.is_set():
        try:
            await run_cleanup_once(db)
        except UnavailableError:
            log.warning("cleanup_skipped", reason="store_unavailable")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    log.info("cleanup_worker_stopped")
