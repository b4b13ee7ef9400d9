"""
Standalone feeder.

Seeds the last day of history when the store is empty or stale, then appends
one simulated reading every sampling interval, backfilling any gap first.
Run it as its own process next to the API (with PLANT_FEEDER_ENABLED=false
on the API side so only one feeder writes).

Usage:
    plant-monitor-feeder                          # defaults from settings/.env
    plant-monitor-feeder --db plant_monitor.db
    plant-monitor-feeder --lookback-hours 6 --no-seed
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from datetime import timedelta

from .core.config import settings
from .core.log import configure_logging
from .domain.interfaces import ReadingStore
from .sensors.simulated import SimulatedEnvironmentSensor
from .services.backfill import BackfillEngine
from .services.feeder import FeedService
from .services.gaps import GapDetector
from .storage.sqlite_repo import SQLiteReadingStore
from .storage.supervisor import ReconnectPolicy, StoreSupervisor

logger = logging.getLogger("plant_monitor.worker")


async def prepare_store(store: ReadingStore, backfill: BackfillEngine, seed: bool = True) -> bool:
    """Create the schema and seed history. False only when the schema step fails."""
    try:
        await store.init()
    except Exception as e:
        logger.exception("Store initialisation failed: %s", e)
        return False

    if seed:
        try:
            await backfill.seed_history()
        except Exception as e:
            # The first tick backfills whatever is still missing
            logger.exception("Startup backfill failed: %s", e)
    return True


async def run(args: argparse.Namespace) -> int:
    store = SQLiteReadingStore(args.db)
    supervisor = StoreSupervisor(store, ReconnectPolicy.from_settings(settings))
    sensor = SimulatedEnvironmentSensor()
    detector = GapDetector(
        threshold=timedelta(seconds=args.gap_threshold),
        interval=timedelta(seconds=args.sample_interval),
        lookback=timedelta(hours=args.lookback_hours),
    )
    backfill = BackfillEngine(store, sensor, detector)
    feeder = FeedService(store, sensor, backfill, detector, supervisor=supervisor)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # Windows
            pass

    logger.info("Starting feeder")
    logger.info("  Store:    %s", args.db)
    logger.info("  Sampling: every %.1fs, gap threshold %.1fs", args.sample_interval, args.gap_threshold)
    logger.info("  Lookback: %.1fh (seed=%s)", args.lookback_hours, not args.no_seed)

    if not await supervisor.connect(stop):
        logger.error("Store unavailable, giving up")
        return 1

    if not await prepare_store(store, backfill, seed=not args.no_seed):
        return 1

    await feeder.start()
    await stop.wait()
    logger.info("Shutting down")
    await feeder.stop()
    return 0


def main() -> None:
    p = argparse.ArgumentParser(description="Simulated sensor feeder with gap backfill")

    p.add_argument("--db", default=settings.sqlite_path, help="SQLite database path")
    p.add_argument("--sample-interval", type=float, default=float(settings.sample_seconds),
                   help="Seconds between live readings")
    p.add_argument("--gap-threshold", type=float, default=float(settings.gap_threshold_seconds),
                   help="Silence longer than this triggers a backfill")
    p.add_argument("--lookback-hours", type=float, default=float(settings.backfill_lookback_hours),
                   help="History seeded into an empty store")
    p.add_argument("--no-seed", action="store_true", help="Skip the startup history backfill")

    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = p.parse_args()

    configure_logging(level="DEBUG" if args.verbose else None)

    raise SystemExit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
