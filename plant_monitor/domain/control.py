from __future__ import annotations
import logging
from threading import Lock
from typing import Iterable

from .errors import UnknownActuatorError
from .models import ActuatorState

logger = logging.getLogger(__name__)


ACTUATORS: tuple[str, ...] = ("light", "pump1", "pump2", "humidifier")


class ActuatorControlBoard:
    """Manual-override flags and output states for the fixed actuator set.

    Lives for the lifetime of the process; nothing is persisted.
    """

    def __init__(self, actuators: Iterable[str] = ACTUATORS) -> None:
        self._lock = Lock()
        self._states: dict[str, ActuatorState] = {name: ActuatorState() for name in actuators}

    @property
    def actuators(self) -> tuple[str, ...]:
        return tuple(self._states)

    def update(self, actuator: str, manual_control: bool, state: bool) -> ActuatorState:
        with self._lock:
            if actuator not in self._states:
                raise UnknownActuatorError(actuator)
            new = ActuatorState(manual_control=bool(manual_control), state=bool(state))
            self._states[actuator] = new
        logger.info("Updated %s control state: manual=%s state=%s", actuator, new.manual_control, new.state)
        return new

    def snapshot(self) -> dict[str, ActuatorState]:
        with self._lock:
            return dict(self._states)
