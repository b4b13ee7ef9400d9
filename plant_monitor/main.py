from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, settings
from .core.log import configure_logging

from .api.routes import router as api_router
import plant_monitor.api.routes as routes_module

from .domain.control import ActuatorControlBoard
from .sensors.simulated import SimulatedEnvironmentSensor
from .services.backfill import BackfillEngine
from .services.feeder import FeedService
from .services.gaps import GapDetector
from .storage.sqlite_repo import SQLiteReadingStore
from .storage.supervisor import ConnectionState, ReconnectPolicy, StoreSupervisor


logger = logging.getLogger(__name__)


def create_app(s: Settings = settings) -> FastAPI:
    # --- Singletons (one set per app instance) ---
    store = SQLiteReadingStore(s.sqlite_path)
    supervisor = StoreSupervisor(store, ReconnectPolicy.from_settings(s))
    board = ActuatorControlBoard()
    sensor = SimulatedEnvironmentSensor()
    detector = GapDetector.from_settings(s)
    backfill = BackfillEngine(store, sensor, detector)
    feeder = FeedService(store, sensor, backfill, detector, supervisor=supervisor) if s.feeder_enabled else None

    async def bootstrap() -> None:
        await store.init()
        if s.seed_on_startup:
            try:
                await backfill.seed_history()
            except Exception as e:
                logger.exception("Startup backfill failed: %s", e)
        if feeder is not None:
            await feeder.start()

    async def reconnect(stop: asyncio.Event) -> None:
        try:
            if await supervisor.connect(stop):
                logger.info("Store reachable again, finishing startup")
                await bootstrap()
        except Exception as e:
            logger.exception("Deferred startup failed: %s", e)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(s.log_level, s.log_file)
        logger.info("Starting %s (db=%s feeder=%s)", s.app_name, s.sqlite_path, s.feeder_enabled)

        stop = asyncio.Event()
        pending: asyncio.Task | None = None
        if await supervisor.check() is ConnectionState.CONNECTED:
            await bootstrap()
        else:
            # Serve requests meanwhile; endpoints report 500 until the store answers
            logger.error("Store unreachable at startup; retrying in the background")
            pending = asyncio.create_task(reconnect(stop), name="store_reconnect")

        try:
            yield
        finally:
            stop.set()
            if pending is not None:
                await pending
            if feeder is not None:
                await feeder.stop()

            logger.info("Shutdown complete")

    app = FastAPI(title=s.app_name, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    # Make the dependency functions in routes resolve to the real ones
    app.dependency_overrides[routes_module.get_store] = lambda: store
    app.dependency_overrides[routes_module.get_control_board] = lambda: board
    app.dependency_overrides[routes_module.get_feeder] = lambda: feeder
    app.dependency_overrides[routes_module.get_supervisor] = lambda: supervisor

    app.include_router(api_router, prefix="/api")

    app.state.store = store
    app.state.board = board
    app.state.feeder = feeder
    app.state.supervisor = supervisor
    return app


app = create_app()
