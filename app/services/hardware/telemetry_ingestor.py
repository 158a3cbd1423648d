"""
Telemetry Ingestor
==================

Entry point for sensor data coming from MQTT.

This service is responsible for:
1. Subscribing to the telemetry topic.
2. Parsing and normalizing raw payloads into ``Reading`` value objects.
3. Recording each reading in the TelemetryStore.
4. Running the IrrigationController on it.
5. Broadcasting the reading to dashboard clients.

Steps 3 and 4 run under the shared state lock, so a manual command arriving
from the API can never interleave between recording a reading and deciding
on it. Paho delivers messages from a single network thread, which keeps
processing in arrival order. Commands published from inside that callback
are queued by paho and written out once the callback returns.

Malformed payloads are logged and dropped; ``ingest`` never raises.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from app.control_loops.irrigation_controller import ControlDecision, IrrigationController
from app.domain.exceptions import MalformedMessageError
from app.domain.telemetry import Reading
from app.schemas.telemetry import TelemetryPayload
from app.services.telemetry_store import TelemetryStore
from app.utils.time import Clock, utc_now

if TYPE_CHECKING:
    from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper
    from app.utils.emitters import EmitterService

logger = logging.getLogger(__name__)


def parse_payload(raw: bytes | str) -> TelemetryPayload:
    """
    Decode one telemetry message.

    Raises:
        MalformedMessageError: Not UTF-8, not a JSON object, or no usable soilMoisture
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else str(raw)
        data = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedMessageError(f"Payload is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedMessageError(f"Payload must be a JSON object, got {type(data).__name__}")

    try:
        return TelemetryPayload.model_validate(data)
    except PydanticValidationError as exc:
        raise MalformedMessageError(f"Invalid telemetry payload: {exc.errors()[0].get('msg')}") from exc


class TelemetryIngestor:
    """Turns telemetry messages into stored readings and automation decisions."""

    def __init__(
        self,
        store: TelemetryStore,
        controller: IrrigationController,
        *,
        mqtt_client: "MQTTClientWrapper | None" = None,
        topic: str = "farm/plot1/sensor_data",
        emitter: "EmitterService | None" = None,
        lock: threading.RLock | None = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            store: Latest/history store
            controller: Irrigation automation
            mqtt_client: Wrapper used by ``start`` to subscribe (None when MQTT is disabled)
            topic: Telemetry topic
            emitter: Optional Socket.IO broadcaster
            lock: Shared state lock (same instance as the store's and controller's)
            clock: Source of ingestion timestamps
        """
        self.store = store
        self.controller = controller
        self.mqtt_client = mqtt_client
        self.topic = topic
        self.emitter = emitter
        self._lock = lock or threading.RLock()
        self._clock = clock
        self.stats = {"accepted": 0, "rejected": 0, "errors": 0}

    def start(self) -> None:
        """Subscribe to the telemetry topic."""
        if self.mqtt_client is None:
            logger.warning("MQTT disabled; telemetry ingestion not subscribed")
            return
        self.mqtt_client.subscribe(self.topic, self._on_message)
        logger.info("TelemetryIngestor listening on %s", self.topic)

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        """MQTT callback: topic filtering already happened in the dispatcher."""
        self.ingest(getattr(msg, "payload", b""))

    def ingest(self, raw: bytes | str) -> Reading | None:
        """
        Process one raw telemetry message.

        Returns:
            The stored Reading, or None when the message was dropped
        """
        try:
            payload = parse_payload(raw)
        except MalformedMessageError as exc:
            self.stats["rejected"] += 1
            logger.warning("Dropping malformed telemetry %r: %s", _preview(raw), exc)
            return None

        try:
            with self._lock:
                reading = Reading(
                    soil_moisture=payload.soil_moisture,
                    pump_status=payload.pump_status,
                    temperature=payload.temperature,
                    humidity=payload.humidity,
                    captured_at=self._clock(),
                )
                self.store.record_reading(reading)
                decision = self.controller.evaluate(reading, reading.captured_at)
        except Exception as exc:
            self.stats["errors"] += 1
            logger.exception("Telemetry processing failed: %s", exc)
            return None

        self.stats["accepted"] += 1
        logger.info(
            "Telemetry accepted: moisture=%s pump=%s temp=%s humidity=%s -> %s",
            reading.soil_moisture,
            reading.pump_status.value,
            reading.temperature,
            reading.humidity,
            decision.outcome.value,
        )
        self._broadcast(reading, decision)
        return reading

    def _broadcast(self, reading: Reading, decision: ControlDecision) -> None:
        if self.emitter is None:
            return
        payload = reading.to_dict()
        payload["automation"] = {
            "outcome": decision.outcome.value,
            "command": decision.command.value if decision.command else None,
            "remainingCooldownSeconds": decision.remaining_cooldown_seconds,
        }
        self.emitter.emit_telemetry_reading(payload)


def _preview(raw: bytes | str, limit: int = 120) -> str:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    return raw[:limit]
