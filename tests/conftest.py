from __future__ import annotations

import asyncio
import os
import random
from datetime import datetime, timezone
from typing import List, Optional, Sequence

# Keep test runs from writing a rotating log file into the working directory
os.environ.setdefault("PLANT_LOG_FILE", "")

import pytest

from plant_monitor.domain.errors import StoreUnavailable
from plant_monitor.domain.models import Reading
from plant_monitor.sensors.simulated import SimulatedEnvironmentSensor
from plant_monitor.storage.sqlite_repo import SQLiteReadingStore


T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class MemoryStore:
    """In-memory ReadingStore that records every write call."""

    def __init__(self) -> None:
        self.rows: List[Reading] = []
        self.batches: List[List[Reading]] = []
        self.single_inserts = 0
        self.fail_reads = 0
        self.fail_pings = 0
        self.pings = 0

    async def init(self) -> None:
        return None

    async def ping(self) -> None:
        self.pings += 1
        if self.fail_pings > 0:
            self.fail_pings -= 1
            raise StoreUnavailable("store offline")

    async def insert_reading(self, reading: Reading) -> None:
        self.single_inserts += 1
        self.rows.append(reading)

    async def insert_readings(self, readings: Sequence[Reading]) -> None:
        self.batches.append(list(readings))
        self.rows.extend(readings)

    async def latest_timestamp(self) -> Optional[datetime]:
        if self.fail_reads > 0:
            self.fail_reads -= 1
            raise StoreUnavailable("store offline")
        if not self.rows:
            return None
        return max(r.timestamp for r in self.rows)

    async def latest_readings(self, limit: int) -> List[Reading]:
        return sorted(self.rows, key=lambda r: r.timestamp)[-limit:]


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def sensor() -> SimulatedEnvironmentSensor:
    return SimulatedEnvironmentSensor(rng=random.Random(1234))


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteReadingStore:
    store = SQLiteReadingStore(str(tmp_path / "readings.db"))
    asyncio.run(store.init())
    return store
