from __future__ import annotations
from datetime import datetime
from typing import Protocol, Optional, Sequence, runtime_checkable
from .models import Reading


@runtime_checkable
class SampleSource(Protocol):
    def generate(self, timestamp: datetime) -> Reading:
        ...


@runtime_checkable
class ReadingStore(Protocol):
    async def init(self) -> None:
        ...

    async def ping(self) -> None:
        ...

    async def insert_reading(self, reading: Reading) -> None:
        ...

    async def insert_readings(self, readings: Sequence[Reading]) -> None:
        ...

    async def latest_timestamp(self) -> Optional[datetime]:
        ...

    async def latest_readings(self, limit: int) -> list[Reading]:
        ...
