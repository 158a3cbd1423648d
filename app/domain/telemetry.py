"""
Telemetry Value Objects
=======================
Immutable snapshot of one soil/climate reading accepted from the field.

A reading is created once per accepted MQTT message and never mutated; the
next message supersedes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.enums.device import PumpStatus
from app.utils.time import utc_now


@dataclass(frozen=True)
class Reading:
    """
    Point-in-time sensor snapshot.

    Attributes:
        soil_moisture: Raw sensor units (practically 0-1023, higher is drier)
        pump_status: Pump state reported by the device
        temperature: Air temperature in °C, None when not reported
        humidity: Relative humidity in %, None when not reported
        captured_at: Gateway ingestion time (UTC)
    """

    soil_moisture: int
    pump_status: PumpStatus = PumpStatus.UNKNOWN
    temperature: float | None = None
    humidity: int | None = None
    captured_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Render using the sensor wire format keys."""
        return {
            "soilMoisture": self.soil_moisture,
            "pumpStatus": self.pump_status.value,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.captured_at.isoformat(),
        }


def empty_reading_dict() -> dict[str, Any]:
    """Shape returned for "latest" before the first message arrives."""
    return {
        "soilMoisture": None,
        "pumpStatus": PumpStatus.OFF.value,
        "temperature": None,
        "humidity": None,
        "timestamp": None,
    }
