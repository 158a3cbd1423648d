"""
Schemas Module
==============

This module provides Pydantic models for request/response validation.
Schemas ensure data integrity and provide automatic validation.
"""

from app.schemas.commands import ManualCommandRequest
from app.schemas.telemetry import TelemetryPayload

__all__ = [
    "ManualCommandRequest",
    "TelemetryPayload",
]
