from __future__ import annotations

import atexit
import contextlib
import logging
import signal
import threading
from typing import Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from app.blueprints.api.commands import commands_api
from app.blueprints.api.health import health_api
from app.blueprints.api.telemetry import telemetry_api
from app.blueprints.api.weather import weather_api
from app.config import load_config, setup_logging
from app.extensions import init_extensions, socketio


def create_app(
    config_overrides: dict[str, Any] | None = None,
    *,
    container=None,
    bootstrap_runtime: bool = False,
) -> Flask:
    """
    Build the gateway application.

    Args:
        config_overrides: AppConfig field values applied on top of the environment
        container: Pre-built ServiceContainer (tests inject one with fake transports)
        bootstrap_runtime: Subscribe to telemetry, fetch weather and start the scheduler
    """
    config = load_config()
    if config_overrides:
        for key, value in config_overrides.items():
            setattr(config, key if hasattr(config, key) else key.lower(), value)
        config.validate()

    # Configure logging early so container startup (MQTT connect/subscriptions)
    # is visible in the terminal and farmgate.log.
    setup_logging(debug=config.DEBUG, log_dir=config.log_dir, log_level=config.log_level)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    # Initialize Socket.IO BEFORE building ServiceContainer (EmitterService needs it)
    init_extensions(flask_app, config.socketio_cors_origins)

    if container is None:
        from app.services.container import ServiceContainer

        container = ServiceContainer.build(config)
    flask_app.config["CONTAINER"] = container

    # ── Graceful shutdown handlers ──────────────────────────────────
    _shutdown_lock = threading.Lock()
    _shutdown_done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal _shutdown_done
        with _shutdown_lock:
            if _shutdown_done:
                return
            _shutdown_done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        try:
            container.shutdown()
        except Exception as exc:
            logging.warning("Error during graceful shutdown: %s", exc)

    def _signal_handler(signum: int, _frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logging.info("Received %s, shutting down", sig_name)
        _graceful_shutdown(sig_name)
        raise SystemExit(0)

    # Register atexit (covers normal interpreter exit)
    atexit.register(_graceful_shutdown, "atexit")
    flask_app.extensions["farmgate_shutdown"] = _graceful_shutdown

    if bootstrap_runtime:
        # Register OS signal handlers (SIGINT=Ctrl-C, SIGTERM=container/systemd stop)
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(OSError, ValueError):
                signal.signal(sig, _signal_handler)

    # Global JSON error handler: catches any unhandled exception on /api/
    # routes and returns a generic message instead of leaking stack traces.
    # Domain exceptions carry their own ``http_status``.
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        if not request.path.startswith("/api/"):
            if isinstance(exc, HTTPException):
                return exc
            raise exc
        from app.domain.exceptions import FarmgateError
        from app.utils.http import error_response, safe_error

        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return safe_error(exc, status, context="http-exception")
            return error_response(exc.description or "Request failed", status)

        if isinstance(exc, FarmgateError):
            status = exc.http_status
            if status >= 500:
                return safe_error(exc, status, context=type(exc).__name__)
            return error_response(str(exc) or "Request failed", status)

        return safe_error(exc, 500, context="unhandled")

    # ── API version prefix ──────────────────────────────────────────
    V1 = "/api/v1"

    flask_app.register_blueprint(telemetry_api, url_prefix=f"{V1}/data")
    flask_app.register_blueprint(commands_api, url_prefix=V1)
    flask_app.register_blueprint(weather_api, url_prefix=f"{V1}/weather")
    flask_app.register_blueprint(health_api, url_prefix=f"{V1}/health")

    # Register Socket.IO event handlers (must be after socketio init)
    from app.socketio import register_handlers

    register_handlers()

    for bp_name, _bp in flask_app.blueprints.items():
        logging.info(f" Registered blueprint: {bp_name}")

    # ── Path alias: /api/* → /api/v1/* ────────────────────────────
    # WSGI-level rewrite, no redirect. Only the path is aliased: responses
    # still use the {"ok","data","error"} envelope.
    _original_wsgi = flask_app.wsgi_app

    def _api_path_alias(environ, start_response):
        path = environ.get("PATH_INFO", "")
        if path.startswith("/api/") and not path.startswith("/api/v1/"):
            environ["PATH_INFO"] = "/api/v1" + path[4:]
        return _original_wsgi(environ, start_response)

    flask_app.wsgi_app = _api_path_alias  # type: ignore[assignment]

    if bootstrap_runtime:
        container.start()
    else:
        logging.info("Skipping runtime bootstrap (bootstrap_runtime=False)")

    logger = logging.getLogger(__name__)
    logger.info("Farmgate gateway initialized successfully.")

    return flask_app


__all__ = ["create_app", "socketio"]
