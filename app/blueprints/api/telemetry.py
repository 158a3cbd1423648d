"""
Telemetry API Blueprint
=======================

Read access to the in-memory telemetry store.

Endpoints:
- GET /api/v1/data/latest - Latest reading plus automation status
- GET /api/v1/data/history - Stored readings, oldest first
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from app.blueprints.api._common import (
    get_irrigation_controller,
    get_telemetry_store,
    success,
)
from app.domain.telemetry import empty_reading_dict
from app.utils.http import safe_route

logger = logging.getLogger("telemetry_api")

telemetry_api = Blueprint("telemetry_api", __name__)


@telemetry_api.get("/latest")
@safe_route("Failed to get latest reading")
def get_latest() -> Response:
    """
    Latest reading with automation status.

    Before the first message every reading field is null and pumpStatus is "OFF".

    Returns:
        {
            "soilMoisture": 812, "pumpStatus": "OFF", "temperature": 24.5,
            "humidity": 61, "timestamp": "...",
            "lastCommandTime": "..." | null, "cooldownSeconds": 30,
            "remainingCooldownSeconds": 0, "automationEnabled": true
        }
    """
    reading = get_telemetry_store().latest()
    status = get_irrigation_controller().status()

    data = reading.to_dict() if reading is not None else empty_reading_dict()
    data.update(
        {
            "lastCommandTime": status["last_command_time"],
            "cooldownSeconds": status["cooldown_seconds"],
            "remainingCooldownSeconds": status["remaining_cooldown_seconds"],
            "automationEnabled": status["automation_enabled"],
        }
    )
    return success(data)


@telemetry_api.get("/history")
@safe_route("Failed to get reading history")
def get_history() -> Response:
    """Stored readings, oldest first (bounded by the history capacity)."""
    readings = get_telemetry_store().history()
    return success([reading.to_dict() for reading in readings])
