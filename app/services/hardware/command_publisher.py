"""
Command Publisher
=================

Serializes pump commands and hands them to the MQTT transport.

Delivery is at-most-once (QoS 0): the field device never acknowledges a
command, so a successful result only means the broker connection accepted
the message within the timeout. Cooldown bookkeeping belongs to the caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from app.enums.device import PumpCommand

if TYPE_CHECKING:
    from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    """Outcome of one publish attempt."""

    ok: bool
    command: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "command": self.command, "error": self.error}


def command_name(command: PumpCommand | str) -> str:
    """Wire name of a command; operator-supplied strings pass through untouched."""
    if isinstance(command, PumpCommand):
        return command.value
    return str(command)


class CommandPublisher:
    """Publishes ``{"command": ...}`` messages on the command topic."""

    def __init__(
        self,
        mqtt_client: "MQTTClientWrapper | None",
        topic: str,
        timeout_seconds: float = 5.0,
    ):
        """
        Args:
            mqtt_client: Connected MQTT wrapper, or None when MQTT is disabled
            topic: Command topic the pump controller listens on
            timeout_seconds: Upper bound on waiting for the broker hand-off
        """
        self.mqtt_client = mqtt_client
        self.topic = topic
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def serialize(command: PumpCommand | str) -> str:
        return json.dumps({"command": command_name(command)})

    def send(self, command: PumpCommand | str) -> PublishResult:
        """Publish one command; never raises."""
        name = command_name(command)
        if self.mqtt_client is None:
            logger.error("Cannot send '%s': MQTT is disabled", name)
            return PublishResult(ok=False, command=name, error="MQTT transport is disabled")

        payload = self.serialize(command)
        try:
            ok = self.mqtt_client.publish(self.topic, payload, qos=0, timeout=self.timeout_seconds)
        except Exception as exc:
            logger.error("Error publishing '%s' to %s: %s", name, self.topic, exc)
            return PublishResult(ok=False, command=name, error=str(exc))

        if not ok:
            logger.error("Failed to publish '%s' to %s", name, self.topic)
            return PublishResult(ok=False, command=name, error="Failed to send command via MQTT")

        logger.info("Command '%s' sent to %s", name, self.topic)
        return PublishResult(ok=True, command=name)
