from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.timeutil import ensure_utc, now_utc
from ..domain.models import Reading


@dataclass(frozen=True)
class FieldRanges:
    # Half-open [low, high) per field
    light: tuple[int, int] = (0, 3000)
    moisture: tuple[int, int] = (0, 2500)  # moisture1 and moisture2
    temperature: tuple[float, float] = (20.0, 30.0)
    temperature_decimals: int = 2
    humidity: tuple[int, int] = (0, 100)
    distance: tuple[int, int] = (0, 40)


class SimulatedEnvironmentSensor:
    """Synthesizes plausible readings for backfill and the live feed."""

    sensor_id = "env_sim_01"

    def __init__(self, ranges: FieldRanges = FieldRanges(), rng: Optional[random.Random] = None) -> None:
        self._ranges = ranges
        self._rng = rng or random.Random()

    @property
    def ranges(self) -> FieldRanges:
        return self._ranges

    def _temperature(self) -> float:
        # Draw on the rounded grid so the upper bound stays exclusive
        lo, hi = self._ranges.temperature
        scale = 10 ** self._ranges.temperature_decimals
        steps = self._rng.randrange(round(lo * scale), round(hi * scale))
        return round(steps / scale, self._ranges.temperature_decimals)

    def generate(self, timestamp: datetime) -> Reading:
        r = self._ranges
        return Reading(
            timestamp=ensure_utc(timestamp),
            light=self._rng.randrange(*r.light),
            moisture1=self._rng.randrange(*r.moisture),
            moisture2=self._rng.randrange(*r.moisture),
            temperature=self._temperature(),
            humidity=self._rng.randrange(*r.humidity),
            distance=self._rng.randrange(*r.distance),
            synthetic=True,
        )

    def read(self) -> Reading:
        return self.generate(now_utc())
