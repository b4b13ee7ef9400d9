from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..core.timeutil import ensure_utc, now_local, now_utc
from ..domain.control import ActuatorControlBoard
from ..domain.errors import DuplicateTimestampError, StoreError, StoreUnavailable, UnknownActuatorError
from ..domain.models import ActuatorState, Reading
from ..services.feeder import FeedService
from ..storage.sqlite_repo import SQLiteReadingStore
from ..storage.supervisor import StoreSupervisor
from .schemas import ControlRequest, SensorReadingIn

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters (imported from main via circular-safe approach) ---
# We define them here as callables that main.py will set via app.dependency_overrides.
def get_store() -> SQLiteReadingStore:  # overridden in main
    raise RuntimeError("Store dependency not configured")

def get_control_board() -> ActuatorControlBoard:  # overridden in main
    raise RuntimeError("Control board dependency not configured")

def get_feeder() -> FeedService | None:  # overridden in main
    raise RuntimeError("Feeder dependency not configured")

def get_supervisor() -> StoreSupervisor:  # overridden in main
    raise RuntimeError("Supervisor dependency not configured")


def _reading_dict(r: Reading) -> dict:
    return {
        "light": r.light,
        "moisture1": r.moisture1,
        "moisture2": r.moisture2,
        "temperature": r.temperature,
        "humidity": r.humidity,
        "distance": r.distance,
        "timestamp": r.timestamp.isoformat(),
        "synthetic": r.synthetic,
    }


def _actuator_dict(s: ActuatorState) -> dict:
    return {"manualControl": s.manual_control, "state": s.state}


# --- Sensor endpoints ---
@router.post("/sensor")
async def ingest_reading(req: SensorReadingIn, store: SQLiteReadingStore = Depends(get_store)):
    logger.info("Received sensor data: %s", req.model_dump(exclude_none=True))
    reading = Reading(
        timestamp=ensure_utc(req.timestamp) if req.timestamp else now_utc(),
        light=req.light,
        moisture1=req.moisture1,
        moisture2=req.moisture2,
        temperature=req.temperature,
        humidity=req.humidity,
        distance=req.distance,
    )
    try:
        await store.insert_reading(reading)
    except StoreError as e:
        if isinstance(e, DuplicateTimestampError):
            logger.warning("Rejected sensor data at %s: %s", reading.timestamp.isoformat(), e)
        else:
            logger.error("Error saving data: %s", e)
        raise HTTPException(status_code=500, detail="Failed to save sensor data")
    return {"ok": True, "timestamp": reading.timestamp.isoformat()}


@router.get("/sensor/latest")
async def latest_reading(store: SQLiteReadingStore = Depends(get_store)):
    try:
        rows = await store.latest_readings(1)
    except StoreUnavailable as e:
        logger.error("Failed to fetch latest sensor data: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch latest sensor data")
    return _reading_dict(rows[0]) if rows else None


@router.get("/sensor/history")
async def reading_history(store: SQLiteReadingStore = Depends(get_store)):
    try:
        rows = await store.latest_readings(settings.history_limit)
    except StoreUnavailable as e:
        logger.error("Failed to fetch sensor history: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch sensor history")
    return [_reading_dict(r) for r in rows]


# --- Actuator control endpoints ---
@router.post("/control")
async def set_control(req: ControlRequest, board: ActuatorControlBoard = Depends(get_control_board)):
    try:
        state = board.update(req.actuator, req.manual_control, req.state)
    except UnknownActuatorError:
        raise HTTPException(status_code=400, detail="Invalid actuator")
    return {"ok": True, "actuator": req.actuator, **_actuator_dict(state)}


@router.get("/control")
async def get_control(board: ActuatorControlBoard = Depends(get_control_board)):
    return {name: _actuator_dict(s) for name, s in board.snapshot().items()}


# --- Health ---
@router.get("/health")
async def health(
    supervisor: StoreSupervisor = Depends(get_supervisor),
    feeder: FeedService | None = Depends(get_feeder),
):
    await supervisor.check()
    live = feeder.live if feeder else None
    return {
        "app": settings.app_name,
        "now_local": now_local().isoformat(),
        "store": supervisor.health(),
        "feeder": {
            "enabled": feeder is not None,
            "running": feeder.is_running if feeder else False,
            "ticks": live.ticks if live else 0,
            "failed_ticks": live.failed_ticks if live else 0,
            "last_tick_utc": live.last_tick_utc.isoformat() if live and live.last_tick_utc else None,
            "last_backfilled": live.last_backfilled if live else 0,
            "last_error": live.last_error if live else None,
        },
    }
