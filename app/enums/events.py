from enum import Enum


class WebSocketEvent(str, Enum):
    """WebSocket event names for real-time communication."""

    # Dashboard namespace events
    TELEMETRY_READING = "telemetry_reading"
    WEATHER_UPDATE = "weather_update"


class ControlOutcome(str, Enum):
    """Result of evaluating one reading in the irrigation controller."""

    COMMAND_SENT = "command_sent"
    PUBLISH_FAILED = "publish_failed"
    COOLDOWN_ACTIVE = "cooldown_active"
    NO_ACTION = "no_action"
