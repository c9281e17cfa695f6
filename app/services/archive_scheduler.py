"""Periodic archival scheduler"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.config.timezone import TimezoneConverter, utc_now
from app.core.domain.retention import CycleResult
from app.services.archive_service import ArchiveService

logger = logging.getLogger(__name__)


class ArchiveScheduler:
    """
    Runs archival cycles on a fixed interval.

    One instance per process, built at startup and handed to whatever needs
    to trigger it. Cycles never overlap: a periodic tick that finds a cycle
    in flight is skipped, a manual trigger waits for it to finish.
    """

    def __init__(
        self,
        archive_service: ArchiveService,
        interval_seconds: float,
        clock: Callable[[], datetime] = utc_now,
        tz_converter: Optional[TimezoneConverter] = None,
    ):
        """
        Initialize scheduler.

        Args:
            archive_service: Service that runs a single cycle
            interval_seconds: Seconds between periodic cycles
            clock: Source of the current (naive UTC) time
            tz_converter: Renders times in log lines (defaults to UTC)
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.archive_service = archive_service
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.tz_converter = tz_converter or TimezoneConverter("UTC")

        self.running = False
        self.last_result: Optional[CycleResult] = None
        self.last_cycle_at: Optional[datetime] = None
        self.cycles_run = 0
        self.ticks_skipped = 0

        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        # Worker-thread cycle; outlives a cancelled caller
        self._cycle: Optional[asyncio.Future] = None

    @property
    def cycle_in_progress(self) -> bool:
        return self._lock.locked() or self._cycle_pending()

    def _cycle_pending(self) -> bool:
        return self._cycle is not None and not self._cycle.done()

    async def _settle_abandoned_cycle(self) -> None:
        """Wait out a cycle whose caller was cancelled; caller holds the lock"""
        if self._cycle_pending():
            await asyncio.wait({self._cycle})

    async def _execute_cycle(self) -> CycleResult:
        """Run one cycle off the event loop; caller holds the lock"""
        await self._settle_abandoned_cycle()
        now = self.clock()
        self._cycle = asyncio.ensure_future(
            asyncio.to_thread(self.archive_service.run_cycle, now)
        )
        result = await asyncio.shield(self._cycle)
        self.last_result = result
        self.last_cycle_at = now
        self.cycles_run += 1
        return result

    async def tick(self) -> Optional[CycleResult]:
        """
        Periodic trigger.

        Returns:
            The cycle result, or None if the tick was skipped
        """
        if self.cycle_in_progress:
            self.ticks_skipped += 1
            logger.warning("Previous archival cycle still running, skipping this tick")
            return None

        async with self._lock:
            return await self._execute_cycle()

    async def trigger(self) -> CycleResult:
        """Manual trigger: queues behind a running cycle, then runs one"""
        async with self._lock:
            logger.info("Running manually triggered archival cycle...")
            return await self._execute_cycle()

    async def run(self, run_immediately: bool = True) -> None:
        """Main scheduler loop"""
        self.running = True
        loop = asyncio.get_running_loop()
        logger.info(f"Archive scheduler started (every {self.interval_seconds}s)")

        if not run_immediately:
            await asyncio.sleep(self.interval_seconds)

        while self.running:
            started = loop.time()
            try:
                result = await self.tick()
                if result is not None and not result.success:
                    logger.error(f"Scheduled archival failed: {result.error}")
            except asyncio.CancelledError:
                logger.info("Archive scheduler cancelled")
                break
            except Exception as e:
                logger.error(f"Error in archive scheduler loop: {e}", exc_info=True)

            # Keep a fixed cadence regardless of how long the cycle took
            delay = max(0.0, self.interval_seconds - (loop.time() - started))
            next_run = self.clock() + timedelta(seconds=delay)
            logger.debug(f"Next archival cycle at {self.tz_converter.format_local(next_run)}")
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                logger.info("Archive scheduler cancelled")
                break

        self.running = False
        logger.info("Archive scheduler stopped")

    def start(self, run_immediately: bool = True) -> asyncio.Task:
        """Start the loop as a background task on the running event loop"""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.run(run_immediately=run_immediately))
        return self._task

    async def stop(self, timeout: float = 30.0) -> None:
        """
        Stop scheduling further cycles.

        An in-flight cycle gets ``timeout`` seconds to finish before the
        loop is cancelled; each rule's update is committed on its own, so an
        abandoned cycle leaves no partial rule state. Its worker thread keeps
        running, and the next tick or trigger waits for it.
        """
        self.running = False
        if self._task is None:
            return

        if self.cycle_in_progress:
            try:
                await asyncio.wait_for(self._wait_for_cycle(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Archival cycle did not finish in time, abandoning it")

        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _wait_for_cycle(self) -> None:
        async with self._lock:
            await self._settle_abandoned_cycle()

    def status(self) -> dict:
        """Snapshot of scheduler state for the status endpoint"""
        return {
            "running": self.running,
            "cycleInProgress": self.cycle_in_progress,
            "intervalSeconds": self.interval_seconds,
            "cyclesRun": self.cycles_run,
            "ticksSkipped": self.ticks_skipped,
            "lastCycleAt": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
            "lastResult": self.last_result.to_dict() if self.last_result else None,
        }
