"""
Control Loops Package
=====================

Automation that turns telemetry into actuator commands.

    TelemetryIngestor ──► IrrigationController ──► CommandPublisher ──► MQTT
                               │
                               └─ hysteresis decision (app.domain.hysteresis)
"""

from app.control_loops.irrigation_controller import ControlDecision, IrrigationController

__all__ = [
    "ControlDecision",
    "IrrigationController",
]
