from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from ..core.timeutil import now_utc
from ..domain.interfaces import ReadingStore, SampleSource
from ..domain.models import Gap
from .gaps import GapDetector

logger = logging.getLogger(__name__)


class BackfillEngine:
    """Closes gaps with synthetic readings written as one batch."""

    def __init__(self, store: ReadingStore, source: SampleSource, detector: GapDetector) -> None:
        self._store = store
        self._source = source
        self._detector = detector

    async def backfill(self, gap: Gap) -> int:
        readings = [self._source.generate(ts) for ts in gap.fill_timestamps()]
        if not readings:
            return 0

        # Store errors (incl. timestamp collisions) propagate; the next tick re-detects
        await self._store.insert_readings(readings)
        logger.info(
            "Inserted %d simulated data points to fill gap (%s -> %s)",
            len(readings),
            readings[0].timestamp.isoformat(),
            readings[-1].timestamp.isoformat(),
        )
        return len(readings)

    async def seed_history(self, now: Optional[datetime] = None) -> int:
        """Fill history when the store is empty or older than the lookback horizon."""
        now = now or now_utc()
        horizon = GapDetector(
            threshold=self._detector.lookback,
            interval=self._detector.interval,
            lookback=self._detector.lookback,
        )
        gap = await horizon.check(self._store, now)
        if gap is None:
            logger.info("History is current, no startup backfill needed")
            return 0

        logger.info(
            "No data or gap found. Filling missing data for the past %.1f hours...",
            gap.duration.total_seconds() / 3600,
        )
        return await self.backfill(gap)
