"""
Configuration for the Farmgate irrigation gateway
==================================================
Main application runtime settings: MQTT transport, irrigation automation,
weather feed and HTTP/Socket.IO serving. Every value can be overridden with a
``FARMGATE_*`` environment variable.
Setups the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from app.domain.exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("FARMGATE_ENV", "development"))
    secret_key: str = field(default_factory=lambda: os.getenv("FARMGATE_SECRET_KEY", "FarmgateDevSecretKey"))
    DEBUG: bool = field(default_factory=lambda: _env_bool("FARMGATE_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("FARMGATE_LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("FARMGATE_LOG_DIR", "logs"))

    # MQTT transport
    enable_mqtt: bool = field(default_factory=lambda: _env_bool("FARMGATE_ENABLE_MQTT", True))
    mqtt_broker_host: str = field(default_factory=lambda: os.getenv("FARMGATE_MQTT_HOST", "broker.hivemq.com"))
    mqtt_broker_port: int = field(default_factory=lambda: _env_int("FARMGATE_MQTT_PORT", 1883))
    mqtt_username: str = field(default_factory=lambda: os.getenv("FARMGATE_MQTT_USERNAME", ""))
    mqtt_password: str = field(default_factory=lambda: os.getenv("FARMGATE_MQTT_PASSWORD", ""))
    mqtt_client_id: str = field(default_factory=lambda: os.getenv("FARMGATE_MQTT_CLIENT_ID", ""))
    sensor_topic: str = field(default_factory=lambda: os.getenv("FARMGATE_SENSOR_TOPIC", "farm/plot1/sensor_data"))
    command_topic: str = field(default_factory=lambda: os.getenv("FARMGATE_COMMAND_TOPIC", "farm/plot1/commands"))
    publish_timeout_seconds: float = field(
        default_factory=lambda: _env_float("FARMGATE_PUBLISH_TIMEOUT_SECONDS", 5.0)
    )

    # Irrigation automation
    # Raw sensor units: higher readings mean drier soil.
    moisture_dry_threshold: int = field(default_factory=lambda: _env_int("FARMGATE_MOISTURE_DRY_THRESHOLD", 700))
    moisture_wet_threshold: int = field(default_factory=lambda: _env_int("FARMGATE_MOISTURE_WET_THRESHOLD", 400))
    pump_cooldown_seconds: int = field(default_factory=lambda: _env_int("FARMGATE_PUMP_COOLDOWN_SECONDS", 30))
    history_capacity: int = field(default_factory=lambda: _env_int("FARMGATE_HISTORY_CAPACITY", 200))

    # Weather feed (OpenWeatherMap current conditions)
    weather_api_key: str = field(default_factory=lambda: os.getenv("FARMGATE_OPENWEATHER_API_KEY", ""))
    weather_base_url: str = field(
        default_factory=lambda: os.getenv(
            "FARMGATE_WEATHER_URL", "https://api.openweathermap.org/data/2.5/weather"
        )
    )
    weather_city: str = field(default_factory=lambda: os.getenv("FARMGATE_WEATHER_CITY", "Nairobi"))
    weather_country_code: str = field(default_factory=lambda: os.getenv("FARMGATE_WEATHER_COUNTRY", "KE"))
    weather_units: str = field(default_factory=lambda: os.getenv("FARMGATE_WEATHER_UNITS", "metric"))
    weather_refresh_seconds: int = field(default_factory=lambda: _env_int("FARMGATE_WEATHER_REFRESH_SECONDS", 600))
    weather_timeout_seconds: float = field(
        default_factory=lambda: _env_float("FARMGATE_WEATHER_TIMEOUT_SECONDS", 10.0)
    )

    socketio_cors_origins: str = field(default_factory=lambda: os.getenv("FARMGATE_SOCKETIO_CORS", "*"))

    # Default insecure secret key - used only for detection
    _DEFAULT_SECRET_KEY: str = field(default="FarmgateDevSecretKey", init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

        # SECURITY: Fail fast if using default secret key in production
        if self.environment == "production" and self.secret_key == self._DEFAULT_SECRET_KEY:
            raise RuntimeError(
                "SECURITY ERROR: Cannot use default secret key in production!\n"
                "Set FARMGATE_SECRET_KEY environment variable to a secure random value.\n"
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )

    def validate(self) -> None:
        """Check the automation invariants; re-run after overrides are applied."""
        if self.moisture_dry_threshold <= self.moisture_wet_threshold:
            raise ConfigurationError(
                f"Dry threshold ({self.moisture_dry_threshold}) must be greater than "
                f"wet threshold ({self.moisture_wet_threshold})."
            )
        if self.pump_cooldown_seconds < 0:
            raise ConfigurationError("Pump cooldown cannot be negative.")
        if self.history_capacity < 1:
            raise ConfigurationError("History capacity must be at least 1.")
        if self.weather_refresh_seconds < 1:
            raise ConfigurationError("Weather refresh interval must be at least 1 second.")
        if self.publish_timeout_seconds <= 0:
            raise ConfigurationError("Publish timeout must be positive.")

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "SECRET_KEY": self.secret_key,
            "DEBUG": self.DEBUG,
            "MQTT_BROKER_HOST": self.mqtt_broker_host,
            "MQTT_BROKER_PORT": self.mqtt_broker_port,
            "SOCKETIO_CORS_ALLOWED_ORIGINS": self.socketio_cors_origins,
        }


def setup_logging(debug: bool = False, log_dir: str = "logs", log_level: str = "INFO") -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level_value = logging.DEBUG if debug else logging.getLevelName(log_level.upper())
    if not isinstance(log_level_value, int):
        log_level_value = logging.INFO

    # Root logger
    root = logging.getLogger()
    root.setLevel(log_level_value)

    # Keep existing handlers but avoid adding duplicates when create_app is called multiple times
    has_console = any(getattr(h, "name", "") == "farmgate_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "farmgate_file" for h in root.handlers)
    added_handler = False

    # Console handler (force UTF-8 to avoid UnicodeEncodeError on Windows terminals)
    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "farmgate_console"
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    # File handler
    if not has_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "farmgate.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "farmgate_file"
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    # Ensure handler levels follow the desired log level
    for handler in root.handlers:
        if getattr(handler, "name", "") in {"farmgate_console", "farmgate_file"}:
            handler.setLevel(log_level_value)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level_value))

    if _env_bool("FARMGATE_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    # Engine.IO polling logs fire every few seconds per connected dashboard
    if _env_bool("FARMGATE_SILENCE_SOCKETIO", True):
        logging.getLogger("socketio").setLevel(logging.WARNING)
        logging.getLogger("engineio").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
