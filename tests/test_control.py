import pytest

from plant_monitor.domain.control import ACTUATORS, ActuatorControlBoard
from plant_monitor.domain.errors import UnknownActuatorError, ValidationError
from plant_monitor.domain.models import ActuatorState


def test_all_actuators_start_off_and_automatic() -> None:
    board = ActuatorControlBoard()

    assert set(board.snapshot()) == {"light", "pump1", "pump2", "humidifier"}
    assert all(s == ActuatorState(manual_control=False, state=False) for s in board.snapshot().values())
    assert board.actuators == ACTUATORS


def test_update_known_actuator() -> None:
    board = ActuatorControlBoard()

    updated = board.update("pump1", manual_control=True, state=True)

    assert updated == ActuatorState(manual_control=True, state=True)
    states = board.snapshot()
    assert states["pump1"] == updated
    assert states["pump2"] == ActuatorState()


def test_unknown_actuator_is_rejected_without_side_effects() -> None:
    board = ActuatorControlBoard()
    before = board.snapshot()

    with pytest.raises(UnknownActuatorError) as excinfo:
        board.update("heater", manual_control=True, state=True)

    assert isinstance(excinfo.value, ValidationError)
    assert excinfo.value.actuator == "heater"
    assert board.snapshot() == before


def test_snapshot_is_a_copy() -> None:
    board = ActuatorControlBoard()
    snap = board.snapshot()
    board.update("light", manual_control=True, state=False)

    assert snap["light"] == ActuatorState()
