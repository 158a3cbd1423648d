"""
Domain Value Objects Package
=============================
Contains immutable value objects following Domain-Driven Design patterns.

Value objects are immutable objects that represent descriptive aspects of the domain
with no conceptual identity. They are defined only by their attributes.
"""

from .hysteresis import HysteresisThresholds, decide
from .telemetry import Reading, empty_reading_dict
from .weather import WeatherSnapshot

__all__ = [
    # Irrigation decision
    "HysteresisThresholds",
    "decide",
    # Telemetry
    "Reading",
    "empty_reading_dict",
    # Weather
    "WeatherSnapshot",
]
