"""
Background Reconciliation Worker
================================

Runs every ``RECONCILE_INTERVAL_SECONDS`` (default 60 s).

Each cycle re-derives every driver's ``active_trip_id`` from the trips
table (see ``src.domain.consistency``) and rewrites the pointers that
drifted.  Normal traffic never produces drift because the lifecycle
manager writes both sides in one transaction; the worker repairs rows
touched outside it.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one API process runs a cycle
  at a time.
* Repairs for one cycle are committed in a single transaction.
* Each repair is a compare-and-set on the pointer value that was read,
  re-checked against the trips table, so an assignment or completion
  committed mid-pass is never overwritten.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.consistency import DriverPointer, OpenTrip, plan_repairs
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import DistributedLock
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import TripRepository, UserRepository

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_reconcile_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Reconciler started (interval=%ds)", settings.reconcile_interval_seconds
    )


async def stop_reconcile_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Reconciler stopped")


async def reconcile_driver_pointers(session: AsyncSession) -> int:
    """Apply one repair pass inside *session*.  Returns drivers repaired."""
    users = UserRepository(session)
    trips = TripRepository(session)

    drivers = [
        DriverPointer(d.id, d.active_trip_id) for d in await users.list_drivers()
    ]
    open_trips = [
        OpenTrip(t.id, t.assigned_driver_id, t.assigned_at)
        for t in await trips.get_open_trips()
    ]

    repaired = 0
    for repair in plan_repairs(drivers, open_trips):
        logger.warning(
            "Driver %s points at %s, expected %s; repairing",
            repair.driver_id,
            repair.current,
            repair.expected,
        )
        if repair.orphaned_trip_ids:
            logger.warning(
                "Driver %s also holds open trips %s",
                repair.driver_id,
                ", ".join(repair.orphaned_trip_ids),
            )
        if await users.repair_active_trip(
            repair.driver_id, repair.current, repair.expected
        ):
            repaired += 1
        else:
            logger.info(
                "Driver %s changed during the pass; left for the next cycle",
                repair.driver_id,
            )
    return repaired


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a reconciliation cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_reconcile_cycle()
        except Exception:
            logger.exception("Unhandled error in reconcile cycle")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.reconcile_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass


async def run_reconcile_cycle() -> int:
    """Execute one locked cycle.  Returns the number of drivers repaired."""
    redis = await get_redis()
    lock = DistributedLock(redis, "driver_reconciler", ttl_seconds=60)

    if not await lock.acquire():
        logger.debug("Lock held by another worker; skipping cycle")
        return 0

    try:
        async with async_session_factory() as session:
            repaired = await reconcile_driver_pointers(session)
            await session.commit()
        if repaired:
            logger.info("Reconcile cycle: %d drivers repaired", repaired)
        return repaired
    finally:
        await lock.release()
