from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Optional

from ..core.config import Settings, settings as default_settings
from ..core.timeutil import ensure_utc, now_utc
from ..domain.errors import TransientGapComputationError
from ..domain.interfaces import ReadingStore
from ..domain.models import Gap

logger = logging.getLogger(__name__)


def _compute_gap(
    last_timestamp: Optional[datetime],
    now: datetime,
    threshold: timedelta,
    interval: timedelta,
    lookback: timedelta,
) -> Optional[Gap]:
    if interval <= timedelta(0):
        raise TransientGapComputationError(f"Sampling interval must be positive, got {interval}")

    now = ensure_utc(now)
    if last_timestamp is None:
        # Empty store: seed the lookback horizon
        return Gap(start=now - lookback, end=now, interval=interval, anchored=False)

    last = ensure_utc(last_timestamp)
    if last > now:
        raise TransientGapComputationError(
            f"Latest reading {last.isoformat()} is ahead of now {now.isoformat()}"
        )
    if now - last > threshold:
        return Gap(start=last, end=now, interval=interval, anchored=True)
    return None


def detect_gap(
    last_timestamp: Optional[datetime],
    now: datetime,
    threshold: timedelta,
    interval: timedelta = timedelta(seconds=10),
    lookback: timedelta = timedelta(hours=24),
) -> Optional[Gap]:
    """Return the gap between the latest stored reading and ``now``, if any.

    Inconsistent inputs (clock skew, a non-positive interval) are logged and
    reported as no gap so the caller keeps running.
    """
    try:
        return _compute_gap(last_timestamp, now, threshold, interval, lookback)
    except TransientGapComputationError as e:
        logger.warning("Gap computation skipped: %s", e)
        return None


class GapDetector:
    def __init__(
        self,
        threshold: timedelta,
        interval: timedelta,
        lookback: timedelta,
    ) -> None:
        self.threshold = threshold
        self.interval = interval
        self.lookback = lookback

    @classmethod
    def from_settings(cls, s: Settings = default_settings) -> "GapDetector":
        return cls(
            threshold=timedelta(seconds=s.gap_threshold_seconds),
            interval=timedelta(seconds=s.sample_seconds),
            lookback=timedelta(hours=s.backfill_lookback_hours),
        )

    def detect(self, last_timestamp: Optional[datetime], now: datetime) -> Optional[Gap]:
        return detect_gap(last_timestamp, now, self.threshold, self.interval, self.lookback)

    async def check(self, store: ReadingStore, now: Optional[datetime] = None) -> Optional[Gap]:
        now = now or now_utc()
        last = await store.latest_timestamp()
        gap = self.detect(last, now)
        if gap is not None:
            logger.debug(
                "Gap detected: start=%s end=%s count=%d", gap.start.isoformat(), gap.end.isoformat(), gap.count
            )
        return gap
