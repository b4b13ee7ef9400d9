from __future__ import annotations


class PlantMonitorError(Exception):
    pass


class StoreError(PlantMonitorError):
    pass


class StoreUnavailable(StoreError):
    """Connection or write failure in the reading store."""


class DuplicateTimestampError(StoreError):
    """A write collided with a reading already stored at the same timestamp."""


class ValidationError(PlantMonitorError):
    pass


class UnknownActuatorError(ValidationError):
    def __init__(self, actuator: str) -> None:
        super().__init__(f"Invalid actuator: {actuator!r}")
        self.actuator = actuator


class TransientGapComputationError(PlantMonitorError):
    """Gap detection inputs are inconsistent (e.g. clock skew)."""
