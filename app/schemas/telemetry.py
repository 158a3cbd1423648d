"""
Telemetry Schemas
=================

Inbound MQTT payload published by the field sensor node::

    {"soilMoisture": 712, "pumpStatus": "OFF", "temperature": "24.3", "humidity": 61}

Only ``soilMoisture`` is required. Optional climate fields are lenient: a
missing or non-numeric value becomes None instead of rejecting the reading.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.enums.device import PumpStatus


def _finite_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class TelemetryPayload(BaseModel):
    """Sensor reading as published on the telemetry topic."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    soil_moisture: int = Field(..., alias="soilMoisture", description="Raw soil moisture (sensor units)")
    pump_status: PumpStatus = Field(default=PumpStatus.UNKNOWN, alias="pumpStatus")
    temperature: Optional[float] = Field(default=None, description="Air temperature (°C)")
    humidity: Optional[int] = Field(default=None, description="Relative humidity (%)")

    @field_validator("soil_moisture", mode="before")
    @classmethod
    def require_numeric_moisture(cls, v):
        number = _finite_float(v)
        if number is None:
            raise ValueError("soilMoisture must be a finite number")
        return int(round(number))

    @field_validator("pump_status", mode="before")
    @classmethod
    def normalize_pump_status(cls, v):
        """Absent or unrecognized reports fall back to UNKNOWN."""
        if v is None:
            return PumpStatus.UNKNOWN
        return PumpStatus(v) if isinstance(v, str) else PumpStatus.UNKNOWN

    @field_validator("temperature", mode="before")
    @classmethod
    def optional_temperature(cls, v):
        return _finite_float(v)

    @field_validator("humidity", mode="before")
    @classmethod
    def optional_humidity(cls, v):
        number = _finite_float(v)
        return int(number) if number is not None else None
