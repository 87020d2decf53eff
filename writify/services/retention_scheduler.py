"""Daily scheduling of the retention sweep.

The sweep fires at midnight UTC every day and, when enabled, once shortly
after startup. The synchronous sweep runs in a worker thread so the event
loop keeps serving requests.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Optional
import logging

from writify.core.errors import SweepFailed
from writify.services.retention import RetentionSweep

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime) -> float:
    """Seconds from ``now`` until the next 00:00 (same clock as ``now``)."""
    next_midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (next_midnight - now).total_seconds()


class RetentionScheduler:
    """Background task that runs a :class:`RetentionSweep` once a day."""

    def __init__(
        self,
        sweep: RetentionSweep,
        run_on_startup: bool = False,
        startup_delay: float = 300,
    ):
        self.sweep = sweep
        self.run_on_startup = run_on_startup
        self.startup_delay = startup_delay
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self):
        """Start the scheduler loop"""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Retention scheduler started")

    async def stop(self):
        """Stop the scheduler loop"""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Retention scheduler stopped")

    async def run_once(self):
        try:
            return await asyncio.to_thread(self.sweep.run)
        except SweepFailed as e:
            # already rolled back; the next firing retries
            logger.error("Scheduled retention sweep failed: %s", e)
            return None

    async def _loop(self):
        if self.run_on_startup:
            try:
                await asyncio.sleep(self.startup_delay)
                await self.run_once()
            except asyncio.CancelledError:
                return
            except Exception as e:
                logger.error(f"Error in startup retention sweep: {e}")

        while self._running:
            try:
                await asyncio.sleep(seconds_until_next_run(datetime.utcnow()))
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in retention scheduler loop: {e}")
                await asyncio.sleep(60)
