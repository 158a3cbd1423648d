"""
Device-related Enumerations
============================

This module contains the enums exchanged with the field pump controller.
"""

from enum import Enum


class PumpStatus(str, Enum):
    """Pump state as reported by the field device."""

    ON = "ON"
    OFF = "OFF"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> "PumpStatus":
        """Only the exact strings "ON" and "OFF" are recognized; anything else is UNKNOWN."""
        return cls.UNKNOWN


class PumpCommand(str, Enum):
    """Commands the gateway issues on the command topic."""

    TURN_PUMP_ON = "TURN_PUMP_ON"
    TURN_PUMP_OFF = "TURN_PUMP_OFF"
