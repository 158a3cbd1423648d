"""app.socketio.dashboard_handlers

Socket.IO handlers for the /dashboard namespace.

Live readings and weather snapshots are pushed by EmitterService; these
handlers only cover connection lifecycle. A freshly connected client gets the
current state right away instead of waiting for the next message.
"""

import logging

from flask import current_app, request
from flask_socketio import emit

from app.enums.events import WebSocketEvent
from app.extensions import socketio
from app.utils.emitters import SOCKETIO_NAMESPACE_DASHBOARD

logger = logging.getLogger(__name__)


def _send_current_state() -> None:
    """Best-effort replay of the latest reading and weather to the caller."""
    container = current_app.config.get("CONTAINER")
    if container is None:
        return
    try:
        reading = container.telemetry_store.latest()
        if reading is not None:
            emit(WebSocketEvent.TELEMETRY_READING.value, reading.to_dict())

        weather = container.weather_service.latest()
        if not weather.is_empty:
            emit(WebSocketEvent.WEATHER_UPDATE.value, weather.to_dict())
    except Exception as e:
        logger.warning("Failed to send current state to client %s: %s", request.sid, e)


@socketio.on("connect", namespace=SOCKETIO_NAMESPACE_DASHBOARD)
def handle_dashboard_connect():
    """Handle client connection to /dashboard namespace"""
    logger.info("Client connected to /dashboard namespace: %s", request.sid)
    _send_current_state()


@socketio.on("disconnect", namespace=SOCKETIO_NAMESPACE_DASHBOARD)
def handle_dashboard_disconnect():
    """Handle client disconnection from /dashboard namespace"""
    logger.info("Client disconnected from /dashboard namespace: %s", request.sid)
