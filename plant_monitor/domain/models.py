from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, Optional


@dataclass(frozen=True)
class Reading:
    timestamp: datetime
    light: Optional[int] = None
    moisture1: Optional[int] = None
    moisture2: Optional[int] = None
    temperature: Optional[float] = None
    humidity: Optional[int] = None
    distance: Optional[int] = None
    synthetic: bool = False


@dataclass(frozen=True)
class Gap:
    start: datetime
    end: datetime
    interval: timedelta
    anchored: bool = False  # start is the timestamp of a stored reading

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def count(self) -> int:
        if self.interval <= timedelta(0) or self.end <= self.start:
            return 0
        return self.duration // self.interval

    def timestamps(self) -> Iterator[datetime]:
        for i in range(self.count):
            yield self.start + i * self.interval

    def fill_timestamps(self) -> Iterator[datetime]:
        """Slots a backfill writes.

        An anchored gap already has a reading at ``start``, so its slots are
        shifted one interval forward and stop short of ``end``, where the
        live sample of the tick lands.
        """
        if not self.anchored:
            yield from self.timestamps()
            return
        for i in range(1, self.count + 1):
            ts = self.start + i * self.interval
            if ts >= self.end:
                break
            yield ts


@dataclass(frozen=True)
class ActuatorState:
    manual_control: bool = False
    state: bool = False


@dataclass(frozen=True)
class TickResult:
    ts_utc: datetime
    gap: Optional[Gap]
    backfilled: int
    live: Optional[Reading]
