"""
Enums Module
============

This module provides enumeration types for the Farmgate gateway.
Enums ensure type safety and consistency across the codebase.
"""

from app.enums.device import PumpCommand, PumpStatus
from app.enums.events import ControlOutcome, WebSocketEvent

__all__ = [
    "ControlOutcome",
    "PumpCommand",
    "PumpStatus",
    "WebSocketEvent",
]
