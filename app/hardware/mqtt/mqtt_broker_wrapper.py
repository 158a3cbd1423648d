"""
    This module provides a wrapper class for handling MQTT client functionality.
    It includes methods for connecting, disconnecting, publishing, and subscribing
    to an MQTT broker, with appropriate logging for each operation.

    The connection is made asynchronously: the network loop is started even
    when the broker is down and keeps retrying with backoff. Subscriptions are
    remembered and restored every time paho (re)connects.
"""

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Callable

import paho.mqtt.client as mqtt

from app.hardware.mqtt.client_factory import create_mqtt_client
from app.utils.time import utc_now

# Configure rotating log handler for MQTT operations
_mqtt_logger = logging.getLogger("farmgate.mqtt")
if not _mqtt_logger.handlers:
    _log_dir = os.getenv("FARMGATE_LOG_DIR", "logs")
    os.makedirs(_log_dir, exist_ok=True)
    _mqtt_handler = RotatingFileHandler(
        os.path.join(_log_dir, "devices_mqtt.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB max per file
        backupCount=3,
        encoding="utf-8",
    )
    _mqtt_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    _mqtt_logger.addHandler(_mqtt_handler)
    _mqtt_logger.setLevel(logging.INFO)
    _mqtt_logger.propagate = False  # Don't duplicate to root logger

RECONNECT_MIN_DELAY_SECONDS = 1
RECONNECT_MAX_DELAY_SECONDS = 30

_LOG_MQTT_DISPATCH = os.getenv("FARMGATE_LOG_MQTT_DISPATCH", "").lower() in {"1", "true", "t", "yes", "on"}


@dataclass
class HealthStatus:
    """
    Tracks the health status of the MQTT client connection.
    """

    is_connected: bool = False
    last_error: str | None = None
    last_error_time: datetime | None = None
    connection_attempts: int = 0
    successful_publishes: int = 0
    failed_publishes: int = 0
    active_subscriptions: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate publish success rate percentage"""
        total_publishes = self.successful_publishes + self.failed_publishes
        if total_publishes == 0:
            return 0.0
        return (self.successful_publishes / total_publishes) * 100

    def mark_connected(self):
        self.is_connected = True
        self.last_error = None
        self.last_error_time = None

    def mark_disconnected(self):
        self.is_connected = False

    def record_error(self, error: Exception | str):
        self.last_error = str(error)
        self.last_error_time = utc_now()

    def to_dict(self):
        """Return health status as a dictionary."""
        return {
            "is_connected": self.is_connected,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "connection_attempts": self.connection_attempts,
            "successful_publishes": self.successful_publishes,
            "failed_publishes": self.failed_publishes,
            "active_subscriptions": self.active_subscriptions,
            "publish_success_rate": round(self.success_rate, 2),
        }


class MQTTClientWrapper:
    """
    Wrapper class for handling MQTT client functionality.
    """

    def __init__(self, broker, port, client_id="", username="", password=""):
        """
        Initializes the MQTT client wrapper and connects to the broker.

        Args:
            broker (str): The MQTT broker address.
            port (int): The MQTT broker port.
            client_id (str, optional): The MQTT client ID. Defaults to "".
            username (str, optional): Broker username; empty disables auth.
            password (str, optional): Broker password.
        """
        self.broker = broker
        self.port = port
        self.client_id = client_id
        self.client = create_mqtt_client(client_id=client_id)
        if username:
            self.client.username_pw_set(username, password or None)
        self.connected = False
        self._loop_started = False
        self._callback_lock = threading.Lock()
        self._callbacks: list[tuple[str, Callable]] = []
        # Always dispatch through our fan-out handler so multiple subscribers can coexist
        self.client.on_message = self._dispatch_message
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.health_status = HealthStatus()
        self._connect()

    def _connect(self):
        """
        Starts an asynchronous connection and the network loop thread.

        ``connected`` only becomes True in ``_on_connect``. If the broker is
        unreachable the loop keeps retrying in the background.
        """
        self.health_status.connection_attempts += 1
        try:
            self.client.reconnect_delay_set(
                min_delay=RECONNECT_MIN_DELAY_SECONDS, max_delay=RECONNECT_MAX_DELAY_SECONDS
            )
            self.client.connect_async(self.broker, self.port, 60)
        except Exception as e:
            _mqtt_logger.error("Invalid MQTT broker settings %s:%s: %s", self.broker, self.port, e)
            self.health_status.record_error(e)
            return
        self.client.loop_start()  # Start the MQTT loop in a separate thread
        self._loop_started = True
        _mqtt_logger.info("Connecting to MQTT broker %s:%s", self.broker, self.port)

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        """(Re)connection handler: restore every registered subscription."""
        if rc != 0:
            _mqtt_logger.error("MQTT connection refused (rc=%s)", rc)
            self.health_status.record_error(f"connection refused rc={rc}")
            return
        self.connected = True
        self.health_status.mark_connected()
        _mqtt_logger.info("Connected to MQTT broker %s:%s", self.broker, self.port)
        with self._callback_lock:
            topics = sorted({topic for topic, _cb in self._callbacks})
        for topic in topics:
            try:
                client.subscribe(topic)
            except Exception as e:
                _mqtt_logger.error("Failed to restore subscription %s: %s", topic, e)
        if topics:
            _mqtt_logger.info("MQTT (re)connected; restored %s subscription(s)", len(topics))

    def _on_disconnect(self, client, userdata, rc, properties=None):
        self.connected = False
        self.health_status.mark_disconnected()
        if rc != 0:
            _mqtt_logger.warning("Unexpected MQTT disconnect (rc=%s); paho will retry", rc)

    def disconnect(self):
        """
        Disconnects from the MQTT broker and stops the retry loop.
        """
        if self._loop_started:
            try:
                self.client.disconnect()
                self.client.loop_stop()
                self._loop_started = False
                self.connected = False
                self.health_status.mark_disconnected()
                with self._callback_lock:
                    self._callbacks.clear()
                _mqtt_logger.info("Disconnected from MQTT broker.")
            except Exception as e:
                _mqtt_logger.error("Error disconnecting from MQTT broker: %s", e)
                self.health_status.record_error(e)

    def publish(self, topic, payload, qos=0, timeout=None) -> bool:
        """
        Publishes a message to the MQTT broker.

        Args:
            topic (str): The MQTT topic to publish to.
            payload (str): The message payload.
            qos (int): Quality of service level (0 = at most once).
            timeout (float, optional): Seconds to wait for paho to hand the
                message to the network. None returns as soon as it is queued.
                Ignored on paho's network thread (inside a message callback),
                where the packet is only written after the callback returns;
                a successful queue result counts as sent there.

        Returns:
            bool: True when the message was accepted (and, with a timeout,
            written out in time); False otherwise.
        """
        if not self.connected:
            _mqtt_logger.warning("MQTT client not connected. Cannot publish to %s.", topic)
            self.health_status.failed_publishes += 1
            return False

        try:
            msg_info = self.client.publish(topic, payload, qos=qos)
            if msg_info.rc != mqtt.MQTT_ERR_SUCCESS:
                self.health_status.failed_publishes += 1
                _mqtt_logger.error("Failed to publish to %s: %s. MQTT result code: %s", topic, payload, msg_info.rc)
                return False

            if timeout is not None and not self._on_network_thread():
                msg_info.wait_for_publish(timeout=timeout)
                if not msg_info.is_published():
                    self.health_status.failed_publishes += 1
                    self.health_status.record_error(f"publish to {topic} timed out after {timeout}s")
                    _mqtt_logger.error("Publish to %s timed out after %ss", topic, timeout)
                    return False

            self.health_status.successful_publishes += 1
            _mqtt_logger.debug("Published to %s: %s", topic, payload)
            return True
        except Exception as e:
            self.health_status.failed_publishes += 1
            self.health_status.record_error(e)
            _mqtt_logger.error("Error publishing to MQTT topic %s: %s", topic, e)
            return False

    def _on_network_thread(self) -> bool:
        """True when called from the thread started by ``loop_start``."""
        return threading.current_thread() is getattr(self.client, "_thread", None)

    def subscribe(self, topic, callback):
        """
        Subscribes to a topic and sets a callback function.

        The callback is registered even while disconnected; the broker-side
        subscription is then made by the reconnect handler.

        Args:
            topic (str): The MQTT topic to subscribe to.
            callback (Callable): The callback function to handle messages.
        """
        self._register_callback(topic, callback)
        self.health_status.active_subscriptions = len(self._callbacks)
        if not self.connected:
            _mqtt_logger.warning("MQTT client not connected. Subscription to %s deferred.", topic)
            return
        try:
            result, _mid = self.client.subscribe(topic)
            if result == mqtt.MQTT_ERR_SUCCESS:
                _mqtt_logger.info("Subscribed to topic %s with callback %s", topic, callback.__name__)
            else:
                _mqtt_logger.error("Failed to subscribe to topic %s: result code %s", topic, result)
        except Exception as e:
            self.health_status.record_error(e)
            _mqtt_logger.error("Error subscribing to MQTT topic %s: %s", topic, e)

    def _register_callback(self, topic: str, callback: Callable) -> None:
        """Register a message handler without clobbering existing subscribers."""
        with self._callback_lock:
            self._callbacks.append((topic, callback))

    def _dispatch_message(self, client, userdata, msg) -> None:
        """
        Fan out MQTT messages to all registered callbacks that match the topic
        using MQTT wildcard semantics.
        """
        if _LOG_MQTT_DISPATCH:
            _mqtt_logger.debug(
                "MQTT DISPATCHER: topic=%s payload_len=%s registered_callbacks=%s",
                msg.topic,
                len(msg.payload),
                len(self._callbacks),
            )

        with self._callback_lock:
            callbacks = list(self._callbacks)

        handled = False
        for sub, callback in callbacks:
            try:
                if mqtt.topic_matches_sub(sub, msg.topic):
                    handled = True
                    callback(client, userdata, msg)
            except Exception as e:
                _mqtt_logger.error("Error in MQTT callback for topic %s: %s", sub, e, exc_info=True)

        if not handled:
            _mqtt_logger.warning(
                "MQTT message on %s had no registered handlers (subscriptions: %s)",
                msg.topic,
                [s[0] for s in callbacks],
            )

    def __del__(self):
        """
        Destructor to ensure disconnection from the MQTT broker.
        """
        # Avoid AttributeError if __init__ failed before the loop flag was set
        if getattr(self, "_loop_started", False):
            self.disconnect()
