"""
WebSocket Emitters
=====================================

Purpose:
    Centralized WebSocket emitter service leveraging Flask-SocketIO.

Features:
- Broadcast each accepted telemetry reading to dashboard clients.
- Broadcast weather snapshots after each successful refresh.
- Emission failures are logged and never propagate to the caller (the MQTT
  loop and the scheduler must keep running).
"""

import logging
from typing import Any

from flask_socketio import SocketIO

from app.enums.events import WebSocketEvent

logger = logging.getLogger("emitters")

# Socket.IO Namespace Constants
SOCKETIO_NAMESPACE_DASHBOARD = "/dashboard"


class EmitterService:
    """
    Centralized WebSocket Emitter Service.

    Attributes:
        sio: The Socket.IO SocketIO instance for emitting events.
    """

    def __init__(self, sio: SocketIO):
        self.sio = sio

    def emit(
        self,
        event: str,
        payload: dict,
        room: str | None = None,
        namespace: str = "/",
    ):
        """
        Emit a Socket.IO event.

        Args:
            event (str): Event name (e.g., "telemetry_reading").
            payload (dict): JSON serializable data to send.
            room (Optional[str]): Socket.IO room identifier. Broadcasts if None.
            namespace (str): Socket.IO namespace to emit under (default "/").
        """
        try:
            self.sio.emit(event, payload, to=room, namespace=namespace)
            logger.debug("Emitted event='%s' to namespace='%s' room='%s'", event, namespace, room or "broadcast")
        except Exception as e:
            logger.exception(f"[Emitter] Failed to emit event '{event}' to room '{room}': {e}")

    def emit_telemetry_reading(self, payload: dict[str, Any]) -> None:
        """Push a freshly accepted reading to the Dashboard namespace."""
        self.emit(
            event=WebSocketEvent.TELEMETRY_READING.value,
            payload=payload,
            namespace=SOCKETIO_NAMESPACE_DASHBOARD,
        )

    def emit_weather_update(self, payload: dict[str, Any]) -> None:
        """Push the refreshed weather snapshot to the Dashboard namespace."""
        self.emit(
            event=WebSocketEvent.WEATHER_UPDATE.value,
            payload=payload,
            namespace=SOCKETIO_NAMESPACE_DASHBOARD,
        )
