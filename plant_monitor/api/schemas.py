from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SensorReadingIn(BaseModel):
    light: Optional[int] = None
    moisture1: Optional[int] = None
    moisture2: Optional[int] = None
    temperature: Optional[float] = None
    humidity: Optional[int] = None
    distance: Optional[int] = None
    timestamp: Optional[datetime] = None  # receipt time when omitted


class ControlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    actuator: str
    manual_control: bool = Field(alias="manualControl")
    state: bool
