"""
System Health Endpoints
=======================

Core gateway health monitoring endpoints.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from app.blueprints.api._common import get_container as _container, success as _success
from app.utils.http import safe_route
from app.utils.time import iso_now

logger = logging.getLogger("health_api")


def register_system_routes(health_api: Blueprint):
    """Register system health routes on the blueprint."""

    @health_api.get("/ping")
    @safe_route("Failed to handle ping request")
    def ping() -> Response:
        """
        Basic liveness check for monitoring tools.

        Returns:
            {"status": "ok", "timestamp": "..."}
        """
        return _success({"status": "ok", "timestamp": iso_now()})

    @health_api.get("")
    @safe_route("Failed to get gateway health")
    def get_gateway_health() -> Response:
        """
        Aggregated gateway health.

        "degraded" means MQTT is disabled or disconnected; readings and
        commands stop until the broker link is back.

        Returns:
            {
                "status": "healthy|degraded",
                "mqtt": {...} | null,
                "automation": {...},
                "ingestion": {"accepted": n, "rejected": n, "errors": n},
                "weather": {"available": bool, "last_error": str | null},
                "scheduler": {...},
                "timestamp": "..."
            }
        """
        container = _container()
        mqtt_client = container.mqtt_client

        mqtt_health = mqtt_client.health_status.to_dict() if mqtt_client is not None else None
        connected = bool(mqtt_client is not None and mqtt_client.connected)
        weather = container.weather_service

        return _success(
            {
                "status": "healthy" if connected else "degraded",
                "mqtt": mqtt_health,
                "automation": container.irrigation_controller.status(),
                "ingestion": dict(container.telemetry_ingestor.stats),
                "history_size": len(container.telemetry_store),
                "weather": {
                    "available": not weather.latest().is_empty,
                    "last_error": weather.last_error,
                },
                "scheduler": container.scheduler.get_status(),
                "timestamp": iso_now(),
            }
        )
