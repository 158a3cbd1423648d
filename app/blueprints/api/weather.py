"""
Weather API Blueprint
=====================

Endpoints:
- GET /api/v1/weather/latest - Cached conditions (all fields null before the first fetch)
"""

from __future__ import annotations

from flask import Blueprint, Response

from app.blueprints.api._common import get_weather_service, success
from app.utils.http import safe_route

weather_api = Blueprint("weather_api", __name__)


@weather_api.get("/latest")
@safe_route("Failed to get weather data")
def get_latest_weather() -> Response:
    return success(get_weather_service().latest().to_dict())
