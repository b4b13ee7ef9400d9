from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..core.timeutil import ensure_utc, now_utc
from ..domain.errors import StoreError
from ..domain.interfaces import ReadingStore, SampleSource
from ..domain.models import Gap, Reading, TickResult
from ..storage.supervisor import StoreSupervisor
from .backfill import BackfillEngine
from .gaps import GapDetector


logger = logging.getLogger(__name__)


@dataclass
class LiveState:
    running: bool = False
    ticks: int = 0
    failed_ticks: int = 0
    last_tick_utc: Optional[datetime] = None
    last_reading: Optional[Reading] = None
    last_gap: Optional[Gap] = None
    last_backfilled: int = 0
    last_error: Optional[str] = None


class FeedService:
    """Keeps the reading series dense: close any gap, then append one live sample per tick."""

    def __init__(
        self,
        store: ReadingStore,
        source: SampleSource,
        backfill: BackfillEngine,
        detector: GapDetector,
        supervisor: Optional[StoreSupervisor] = None,
    ) -> None:
        self._store = store
        self._source = source
        self._backfill = backfill
        self._detector = detector
        self._supervisor = supervisor

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

        self.live = LiveState()

    @property
    def interval(self) -> timedelta:
        return self._detector.interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="feeder_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def tick(self, now: Optional[datetime] = None) -> TickResult:
        now = ensure_utc(now) if now is not None else now_utc()

        # 1) + 2) Close any gap before appending so timestamps stay ordered
        gap = await self._detector.check(self._store, now)
        backfilled = 0
        if gap is not None:
            logger.info("Gap detected. Filling the gap...")
            backfilled = await self._backfill.backfill(gap)

        # 3) Live sample at now
        reading = self._source.generate(now)
        await self._store.insert_reading(reading)
        logger.info(
            "Inserted real-time data with moisture1: %s at: %s (sensor=%s)",
            reading.moisture1,
            reading.timestamp.isoformat(),
            getattr(self._source, "sensor_id", "?"),
        )

        self.live.last_reading = reading
        self.live.last_gap = gap
        self.live.last_backfilled = backfilled
        return TickResult(ts_utc=now, gap=gap, backfilled=backfilled, live=reading)

    async def _run(self) -> None:
        logger.info(
            "Feeder loop started (sample_seconds=%s gap_threshold_seconds=%s)",
            self.interval.total_seconds(),
            self._detector.threshold.total_seconds(),
        )
        self.live.running = True

        while not self._stop.is_set():
            try:
                await self.tick()
                self.live.last_error = None
                if self._supervisor is not None:
                    self._supervisor.mark_ok()
            except Exception as e:
                # A failed tick never stops the feed; the next gap check regenerates lost rows
                self.live.failed_ticks += 1
                self.live.last_error = str(e)
                logger.exception("Feeder tick failed: %s", e)
                if self._supervisor is not None and isinstance(e, StoreError):
                    self._supervisor.mark_failed(e)
            finally:
                self.live.ticks += 1
                self.live.last_tick_utc = now_utc()

            # sleep with cancellation awareness
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval.total_seconds())
            except asyncio.TimeoutError:
                pass

        self.live.running = False
        logger.info("Feeder loop stopped")
