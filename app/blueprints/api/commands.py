"""
Commands API Blueprint
======================

Operator override for the pump.

Endpoints:
- POST /api/v1/command - Publish {"command": action} immediately

The command bypasses the hysteresis and cooldown checks and resets the
automation cooldown.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response
from pydantic import ValidationError as PydanticValidationError

from app.blueprints.api._common import get_irrigation_controller, get_json, success
from app.domain.exceptions import TransportError, ValidationError
from app.schemas import ManualCommandRequest
from app.utils.http import safe_route

logger = logging.getLogger("commands_api")

commands_api = Blueprint("commands_api", __name__)


@commands_api.post("/command")
@safe_route("Failed to send command")
def send_command() -> Response:
    """
    Send a manual command to the pump controller.

    Body:
        {"action": "TURN_PUMP_ON"}

    Any non-empty action string is forwarded as-is.
    """
    try:
        body = ManualCommandRequest.model_validate(get_json())
    except PydanticValidationError as exc:
        raise ValidationError("Action is required in request body.") from exc

    controller = get_irrigation_controller()
    result = controller.manual_command(body.action)
    if not result.ok:
        raise TransportError("Failed to send command via MQTT", detail=result.to_dict())

    return success(
        {
            "command": result.command,
            "lastCommandTime": controller.status()["last_command_time"],
        },
        message=f"Command '{result.command}' sent.",
    )
