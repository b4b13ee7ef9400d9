import random
from datetime import datetime, timedelta, timezone

from plant_monitor.sensors.simulated import FieldRanges, SimulatedEnvironmentSensor


def test_generated_fields_stay_in_declared_ranges(sensor, t0) -> None:
    for i in range(2000):
        reading = sensor.generate(t0 + timedelta(seconds=10 * i))

        assert 0 <= reading.light < 3000
        assert 0 <= reading.moisture1 < 2500
        assert 0 <= reading.moisture2 < 2500
        assert 20.0 <= reading.temperature < 30.0
        assert round(reading.temperature, 2) == reading.temperature
        assert 0 <= reading.humidity < 100
        assert 0 <= reading.distance < 40
        assert isinstance(reading.light, int)
        assert isinstance(reading.temperature, float)


def test_generate_keeps_the_given_timestamp(sensor, t0) -> None:
    reading = sensor.generate(t0)

    assert reading.timestamp == t0
    assert reading.synthetic is True


def test_naive_timestamps_are_treated_as_utc(sensor) -> None:
    reading = sensor.generate(datetime(2026, 1, 1, 12, 0))

    assert reading.timestamp == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_seeded_generators_are_reproducible(t0) -> None:
    a = SimulatedEnvironmentSensor(rng=random.Random(7))
    b = SimulatedEnvironmentSensor(rng=random.Random(7))

    assert [a.generate(t0) for _ in range(5)] == [b.generate(t0) for _ in range(5)]


def test_custom_ranges_are_honoured(t0) -> None:
    ranges = FieldRanges(light=(100, 101), temperature=(25.0, 25.01), humidity=(50, 51))
    reading = SimulatedEnvironmentSensor(ranges=ranges, rng=random.Random(0)).generate(t0)

    assert reading.light == 100
    assert reading.temperature == 25.0
    assert reading.humidity == 50
