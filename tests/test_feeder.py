import asyncio
import logging
from datetime import timedelta

from plant_monitor.services.backfill import BackfillEngine
from plant_monitor.services.feeder import FeedService
from plant_monitor.services.gaps import GapDetector
from plant_monitor.storage.supervisor import ConnectionState, StoreSupervisor

INTERVAL = timedelta(seconds=10)


def _feeder(store, sensor, interval=INTERVAL, threshold=timedelta(seconds=15), supervisor=None) -> FeedService:
    detector = GapDetector(threshold=threshold, interval=interval, lookback=timedelta(hours=24))
    return FeedService(store, sensor, BackfillEngine(store, sensor, detector), detector, supervisor=supervisor)


def test_tick_closes_gap_then_appends_live_sample(sqlite_store, sensor, t0) -> None:
    feeder = _feeder(sqlite_store, sensor)

    async def scenario():
        await sqlite_store.insert_reading(sensor.generate(t0))
        result = await feeder.tick(now=t0 + timedelta(seconds=45))
        return result, await sqlite_store.latest_readings(100)

    result, rows = asyncio.run(scenario())

    assert result.backfilled == 4
    assert len(rows) == 6
    new = rows[1:]
    assert [r.timestamp for r in new] == [
        t0 + timedelta(seconds=10),
        t0 + timedelta(seconds=20),
        t0 + timedelta(seconds=30),
        t0 + timedelta(seconds=40),
        t0 + timedelta(seconds=45),
    ]
    stamps = [r.timestamp for r in rows]
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


def test_tick_without_gap_only_appends(memory_store, sensor, t0) -> None:
    feeder = _feeder(memory_store, sensor)
    memory_store.rows.append(sensor.generate(t0))

    result = asyncio.run(feeder.tick(now=t0 + timedelta(seconds=10)))

    assert result.gap is None
    assert result.backfilled == 0
    assert memory_store.batches == []
    assert memory_store.single_inserts == 1
    assert feeder.live.last_reading.timestamp == t0 + timedelta(seconds=10)


def test_live_insert_log_names_the_sensor(memory_store, sensor, t0, caplog) -> None:
    feeder = _feeder(memory_store, sensor)
    memory_store.rows.append(sensor.generate(t0))

    with caplog.at_level(logging.INFO, logger="plant_monitor.services.feeder"):
        asyncio.run(feeder.tick(now=t0 + timedelta(seconds=10)))

    inserted = [r.getMessage() for r in caplog.records if "Inserted real-time data" in r.getMessage()]
    assert len(inserted) == 1
    assert "(sensor=env_sim_01)" in inserted[0]


def test_tick_exactly_on_interval_boundary_keeps_timestamps_unique(memory_store, sensor, t0) -> None:
    feeder = _feeder(memory_store, sensor)
    memory_store.rows.append(sensor.generate(t0))

    asyncio.run(feeder.tick(now=t0 + timedelta(seconds=20)))

    stamps = [r.timestamp for r in memory_store.rows]
    assert stamps == [t0, t0 + timedelta(seconds=10), t0 + timedelta(seconds=20)]


def test_first_tick_on_empty_store_seeds_history(memory_store, sensor, t0) -> None:
    feeder = _feeder(memory_store, sensor)

    result = asyncio.run(feeder.tick(now=t0))

    assert result.backfilled == 8640
    assert len(memory_store.rows) == 8641
    assert memory_store.rows[-1].timestamp == t0


def test_loop_survives_failed_ticks(memory_store, sensor) -> None:
    memory_store.fail_reads = 2
    feeder = _feeder(
        memory_store,
        sensor,
        interval=timedelta(milliseconds=10),
        threshold=timedelta(hours=1),
    )
    memory_store.rows.append(sensor.read())

    async def scenario():
        await feeder.start()
        for _ in range(200):
            if feeder.live.ticks >= 4:
                break
            await asyncio.sleep(0.01)
        running = feeder.is_running
        await feeder.stop()
        return running

    running = asyncio.run(scenario())

    assert running is True
    assert feeder.live.failed_ticks == 2
    assert feeder.live.ticks >= 4
    assert memory_store.single_inserts >= 2
    assert feeder.live.last_error is None
    assert feeder.is_running is False
    assert feeder.live.running is False


def test_store_failures_are_reported_to_supervisor(memory_store, sensor, caplog) -> None:
    supervisor = StoreSupervisor(memory_store)
    supervisor.mark_ok()
    memory_store.fail_reads = 1
    feeder = _feeder(
        memory_store,
        sensor,
        interval=timedelta(milliseconds=10),
        threshold=timedelta(hours=1),
        supervisor=supervisor,
    )
    memory_store.rows.append(sensor.read())

    async def scenario():
        await feeder.start()
        for _ in range(200):
            if feeder.live.ticks >= 3:
                break
            await asyncio.sleep(0.01)
        await feeder.stop()

    with caplog.at_level(logging.INFO, logger="plant_monitor.storage.supervisor"):
        caplog.clear()
        asyncio.run(scenario())

    assert "connected -> disconnected" in caplog.text
    assert "disconnected -> connected" in caplog.text
    assert supervisor.state is ConnectionState.CONNECTED


def test_stop_interrupts_the_interval_wait(memory_store, sensor) -> None:
    feeder = _feeder(memory_store, sensor, interval=timedelta(hours=1))
    memory_store.rows.append(sensor.read())

    async def scenario():
        await feeder.start()
        await asyncio.sleep(0.05)
        await asyncio.wait_for(feeder.stop(), timeout=2)

    asyncio.run(scenario())

    assert feeder.live.ticks == 1
    assert feeder.is_running is False
