"""
Weather Snapshot
================
Latest conditions returned by the external weather feed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class WeatherSnapshot:
    """Cached weather conditions; every field is None until the first successful fetch."""

    temperature: float | None = None
    feels_like: float | None = None
    description: str | None = None
    icon: str | None = None
    city: str | None = None
    humidity: int | None = None
    wind_speed: float | None = None
    timestamp: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.timestamp is None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        return data
