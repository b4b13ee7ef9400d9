from __future__ import annotations
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Sequence

import aiosqlite

from ..domain.errors import DuplicateTimestampError, StoreUnavailable
from ..domain.models import Reading


_COLUMNS = "ts_utc,light,moisture1,moisture2,temperature,humidity,distance,synthetic"


def _ts_key(ts: datetime) -> str:
    # Fixed-width UTC text so lexical order equals time order
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _row_params(r: Reading) -> tuple:
    return (
        _ts_key(r.timestamp),
        r.light,
        r.moisture1,
        r.moisture2,
        r.temperature,
        r.humidity,
        r.distance,
        1 if r.synthetic else 0,
    )


def _from_row(row: Sequence) -> Reading:
    ts, light, m1, m2, temp, hum, dist, syn = row
    return Reading(
        timestamp=datetime.fromisoformat(ts),
        light=light,
        moisture1=m1,
        moisture2=m2,
        temperature=temp,
        humidity=hum,
        distance=dist,
        synthetic=bool(syn),
    )


class SQLiteReadingStore:
    """Append-only reading collection keyed by timestamp."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self._path) as db:
                yield db
        except sqlite3.IntegrityError as e:
            raise DuplicateTimestampError(str(e)) from e
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailable(f"SQLite store {self._path!r} failed: {e}") from e

    async def init(self) -> None:
        async with self._connect() as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS readings (
                    ts_utc TEXT PRIMARY KEY,
                    light INTEGER,
                    moisture1 INTEGER,
                    moisture2 INTEGER,
                    temperature REAL,
                    humidity INTEGER,
                    distance INTEGER,
                    synthetic INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            await db.commit()

    async def ping(self) -> None:
        async with self._connect() as db:
            cur = await db.execute("SELECT 1")
            await cur.fetchone()

    async def insert_reading(self, r: Reading) -> None:
        async with self._connect() as db:
            await db.execute(
                f"INSERT INTO readings({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?)",
                _row_params(r),
            )
            await db.commit()

    async def insert_readings(self, readings: Sequence[Reading]) -> None:
        if not readings:
            return
        # One transaction: a collision rolls back the whole batch
        async with self._connect() as db:
            await db.executemany(
                f"INSERT INTO readings({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?)",
                [_row_params(r) for r in readings],
            )
            await db.commit()

    async def latest_timestamp(self) -> Optional[datetime]:
        async with self._connect() as db:
            cur = await db.execute("SELECT ts_utc FROM readings ORDER BY ts_utc DESC LIMIT 1")
            row = await cur.fetchone()
        return datetime.fromisoformat(row[0]) if row else None

    async def latest_readings(self, limit: int) -> List[Reading]:
        """The ``limit`` newest readings in chronological order."""
        async with self._connect() as db:
            cur = await db.execute(
                f"""
                SELECT {_COLUMNS}
                FROM readings
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = await cur.fetchall()
        return list(reversed([_from_row(r) for r in rows]))

    async def count(self) -> int:
        async with self._connect() as db:
            cur = await db.execute("SELECT COUNT(*) FROM readings")
            row = await cur.fetchone()
        return int(row[0])
