"""Entry point for the Farmgate irrigation gateway.

Builds the application with the runtime enabled (MQTT subscription, weather
refresh, scheduler) and serves HTTP and Socket.IO from one process.
"""

from __future__ import annotations

import logging
import os
import sys

from app import create_app, socketio

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")


def _env_flag_true(name: str) -> bool:
    v = os.getenv(name)
    return bool(v and v.lower() in ("1", "true", "yes", "on"))


def main() -> int:
    host = os.getenv("FARMGATE_HOST", "0.0.0.0")
    port = int(os.getenv("FARMGATE_PORT", "5000"))
    debug = _env_flag_true("FARMGATE_DEBUG")

    app = create_app(bootstrap_runtime=True)

    logging.info("Starting server on http://%s:%s", host, port)
    logging.info("SocketIO async_mode: %s", socketio.async_mode)

    try:
        # socketio.run() instead of app.run() for WebSocket support
        socketio.run(
            app,
            host=host,
            port=port,
            debug=debug,
            use_reloader=False,
            allow_unsafe_werkzeug=True,
        )
        logging.info("Server stopped.")
        return 0
    except KeyboardInterrupt:
        logging.info("Server stopped by user.")
        return 0
    except Exception as exc:  # pragma: no cover - top-level runtime errors
        logging.exception("ERROR: Failed to start server: %s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
