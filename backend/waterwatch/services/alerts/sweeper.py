"""
Periodic sweeper for time-driven alert transitions.

Each pass auto-resolves expired alerts, applies due escalations, and
retries rule processing that never completed. When a Redis client is
supplied the pass runs under a non-blocking Redis lock so that only one
API replica sweeps at a time; a replica that cannot take the lock skips
the pass.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from redis.exceptions import LockError, RedisError

from waterwatch.models.base import Clock, utc_now

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from waterwatch.services.alerts.engine import AlertLifecycleEngine

logger = logging.getLogger(__name__)

SWEEP_LOCK_NAME = "waterwatch:alert_sweeper"


class AlertSweeper:
    """Run the engine's time-driven passes on an interval.

    Args:
        engine: The alert lifecycle engine.
        redis: Optional Redis client used for the cross-replica lock.
        interval_seconds: Pause between two passes.
        lock_timeout_seconds: Expiry of the lock if a replica dies mid-pass.
        clock: Source of the time recorded for each pass.
    """

    def __init__(
        self,
        engine: AlertLifecycleEngine,
        redis: Optional[Redis] = None,  # type: ignore[type-arg]
        interval_seconds: float = 60,
        lock_timeout_seconds: float = 120,
        clock: Clock = utc_now,
    ) -> None:
        self._engine = engine
        self._redis = redis
        self._interval = interval_seconds
        self._lock_timeout = lock_timeout_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._clock = clock
        self.last_pass_at: Optional[datetime] = None
        self.last_report: Optional[dict[str, Any]] = None

    async def run_once(self) -> dict[str, Any]:
        """Execute one sweep and report what it did."""
        report = await self._run_under_lock()
        self.last_pass_at = self._clock()
        self.last_report = report
        return report

    async def _run_under_lock(self) -> dict[str, Any]:
        if self._redis is None:
            return await self._sweep()

        lock = self._redis.lock(SWEEP_LOCK_NAME, timeout=self._lock_timeout)
        try:
            acquired = await lock.acquire(blocking=False)
        except RedisError as exc:
            logger.warning("Sweeper lock unavailable, skipping pass: %s", exc)
            return {"skipped": True, "reason": "lock_unavailable"}

        if not acquired:
            logger.debug("Another replica holds the sweeper lock")
            return {"skipped": True, "reason": "locked"}

        try:
            return await self._sweep()
        finally:
            try:
                await lock.release()
            except LockError as exc:
                logger.warning("Sweeper lock expired before release: %s", exc)

    async def _sweep(self) -> dict[str, Any]:
        auto_resolved = await self._engine.process_auto_resolve_alerts()
        escalated = await self._engine.process_escalations()
        retried = await self._engine.process_pending_actions()
        report = {
            "skipped": False,
            "auto_resolved": auto_resolved,
            "escalated": escalated,
            "retried": retried,
        }
        if auto_resolved or escalated or retried:
            logger.info("Alert sweep complete", extra=report)
        return report

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as exc:
                logger.exception("Alert sweep failed: %s", exc)
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task[None]:
        """Start the background loop on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run_forever(), name="alert-sweeper")
            logger.info("Alert sweeper started", extra={"interval_seconds": self._interval})
        return self._task

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Alert sweeper stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
