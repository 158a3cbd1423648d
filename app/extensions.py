"""Flask Extension Instances and Initialisation."""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO


def _socketio_transports() -> list[str]:
    """Return allowed Engine.IO transports.

    Default to polling-only to avoid Werkzeug websocket upgrade crashes.
    Override with `FARMGATE_SOCKETIO_TRANSPORTS`, e.g. `polling,websocket`.
    """
    raw = os.getenv("FARMGATE_SOCKETIO_TRANSPORTS")
    if raw:
        transports = [t.strip() for t in raw.split(",") if t.strip()]
        if transports:
            return transports

    return ["polling"]


# Threading mode: MQTT callbacks and the scheduler emit from plain threads
socketio = SocketIO(
    async_mode="threading",
    cors_allowed_origins=[],
    logger=True,
    engineio_logger=False,
    ping_timeout=60,
    ping_interval=25,
    transports=_socketio_transports(),
)


def _parse_origins(cors_origins: str | list[str] | None) -> str | list[str]:
    """``"*"`` stays a wildcard; anything else is a comma-separated origin list."""
    if isinstance(cors_origins, list):
        return cors_origins
    if not cors_origins or cors_origins.strip() == "*":
        return "*"
    return [origin.strip() for origin in cors_origins.split(",") if origin.strip()]


def init_extensions(app: Flask, cors_origins: str) -> None:
    """Initialise Flask extension objects.

    The dashboard may be served from another origin, so the JSON API under
    ``/api/`` and Socket.IO accept the same set of origins.
    """
    origins = _parse_origins(cors_origins)

    CORS(app, resources={r"/api/*": {"origins": origins}})
    logging.info(f"✅ HTTP API CORS enabled for origins: {origins}")

    try:
        socketio.init_app(
            app, cors_allowed_origins=origins, logger=logging.getLogger("socketio"), engineio_logger=False
        )
        logging.info(f"✅ Socket.IO initialized with CORS origins: {origins}")
    except Exception as e:
        logging.error(f"Failed to initialize Socket.IO: {e}", exc_info=True)
        raise
