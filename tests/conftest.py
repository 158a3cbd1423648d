"""
Shared test fixtures for the Farmgate gateway test suite.

Provides:
- A fake paho client (no network) and helpers to wrap it
- A manual clock for cooldown arithmetic
- Store / publisher / controller / ingestor factories sharing one lock
- A Flask app built around an injected ServiceContainer (pytest-flask
  derives its `client` fixture from `app`)

Usage:
    def test_example(controller, clock, fake_mqtt):
        clock.advance(31)
        ...
"""

from __future__ import annotations

import logging
import os
import queue
import sys
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The MQTT module configures its file logger at import time
os.environ.setdefault("FARMGATE_LOG_DIR", tempfile.mkdtemp(prefix="farmgate-logs-"))

from app.config import AppConfig
from app.control_loops.irrigation_controller import IrrigationController
from app.domain.hysteresis import HysteresisThresholds
from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper
from app.services.hardware.command_publisher import CommandPublisher
from app.services.hardware.telemetry_ingestor import TelemetryIngestor
from app.services.telemetry_store import TelemetryStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.getLogger("app").setLevel(logging.WARNING)

SENSOR_TOPIC = "farm/plot1/sensor_data"
COMMAND_TOPIC = "farm/plot1/commands"
T0 = datetime(2026, 5, 1, 6, 0, 0, tzinfo=timezone.utc)


# ========================== Fakes ==========================================


class DummyMessage:
    def __init__(self, topic: str, payload: bytes):
        self.topic = topic
        self.payload = payload


class DummyMessageInfo:
    def __init__(self, rc: int = 0, published: bool = True):
        self.rc = rc
        self._published = published
        self.wait_calls = []

    def wait_for_publish(self, timeout=None):
        self.wait_calls.append(timeout)

    def is_published(self) -> bool:
        return self._published


class DummyClient:
    """Stand-in for ``paho.mqtt.client.Client``.

    ``loop_start`` reports a successful connection right away unless the
    broker is marked down; ``accept_connection`` simulates it coming back.
    """

    def __init__(self, *, broker_up: bool = True):
        self.on_message = None
        self.on_connect = None
        self.on_disconnect = None
        self.broker_up = broker_up
        self.connect_args = None
        self.reconnect_delay = None
        self.loop_running = False
        self.subscriptions: list[str] = []
        self.published: list[tuple[str, str, int]] = []
        self.publish_rc = 0
        self.publish_completes = True
        self.publish_error: Exception | None = None
        self.credentials = None

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.reconnect_delay = (min_delay, max_delay)

    def connect_async(self, host, port=1883, keepalive=60):
        self.connect_args = (host, port, keepalive)

    def loop_start(self):
        self.loop_running = True
        if self.broker_up:
            self.accept_connection()

    def accept_connection(self):
        self.broker_up = True
        self.on_connect(self, None, {}, 0)

    def disconnect(self):
        return None

    def loop_stop(self):
        self.loop_running = False

    def subscribe(self, topic):
        self.subscriptions.append(topic)
        return (0, len(self.subscriptions))

    def publish(self, topic, payload, qos=0):
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((topic, payload, qos))
        return DummyMessageInfo(rc=self.publish_rc, published=self.publish_completes)


class DeferredMessageInfo:
    """Message info that completes only when the network loop flushes it."""

    def __init__(self):
        self.rc = 0
        self._written = threading.Event()

    def wait_for_publish(self, timeout=None):
        self._written.wait(timeout)

    def is_published(self) -> bool:
        return self._written.is_set()


class NetworkLoopClient(DummyClient):
    """Fake paho client with its own network thread.

    Like paho, inbound messages are dispatched on ``_thread`` and packets
    published from inside that callback are only written once it returns.
    """

    def __init__(self):
        super().__init__()
        self._thread = None
        self._inbox: queue.Queue = queue.Queue()
        self._unwritten: list[DeferredMessageInfo] = []

    def loop_start(self):
        self._thread = threading.Thread(target=self._loop, name="fake-paho-loop", daemon=True)
        self._thread.start()
        super().loop_start()

    def loop_stop(self):
        if self._thread is not None:
            self._inbox.put(None)
            self._thread.join(timeout=5)
            self._thread = None
        super().loop_stop()

    def deliver(self, topic: str, payload: bytes, timeout: float = 10.0) -> None:
        """Hand one inbound message to the loop and wait until it is handled."""
        handled = threading.Event()
        self._inbox.put((DummyMessage(topic, payload), handled))
        assert handled.wait(timeout), "network loop did not handle the message"

    def publish(self, topic, payload, qos=0):
        self.published.append((topic, payload, qos))
        info = DeferredMessageInfo()
        if threading.current_thread() is self._thread:
            self._unwritten.append(info)
        else:
            info._written.set()
        return info

    def _loop(self):
        while True:
            item = self._inbox.get()
            if item is None:
                return
            msg, handled = item
            try:
                self.on_message(self, None, msg)
            finally:
                for info in self._unwritten:
                    info._written.set()
                self._unwritten.clear()
                handled.set()


class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def at(self, seconds: float) -> datetime:
        """Absolute offset from the start instant."""
        return T0 + timedelta(seconds=seconds)


def build_wrapper(dummy_client: DummyClient, **kwargs) -> MQTTClientWrapper:
    with patch(
        "app.hardware.mqtt.mqtt_broker_wrapper.create_mqtt_client",
        return_value=dummy_client,
    ):
        wrapper = MQTTClientWrapper(broker="test", port=1883, **kwargs)
    return wrapper


# ========================== Core Fixtures ==================================


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def dummy_client():
    return DummyClient()


@pytest.fixture()
def fake_mqtt(dummy_client):
    """Connected MQTTClientWrapper over the dummy paho client."""
    return build_wrapper(dummy_client)


@pytest.fixture()
def state_lock():
    return threading.RLock()


@pytest.fixture()
def store(state_lock):
    return TelemetryStore(capacity=200, lock=state_lock)


@pytest.fixture()
def publisher(fake_mqtt):
    return CommandPublisher(fake_mqtt, topic=COMMAND_TOPIC, timeout_seconds=0.5)


@pytest.fixture()
def controller(publisher, state_lock, clock):
    return IrrigationController(
        publisher,
        thresholds=HysteresisThresholds(dry_threshold=700, wet_threshold=400),
        cooldown_seconds=30,
        lock=state_lock,
        clock=clock,
    )


class RecordingEmitter:
    """Collects what EmitterService would broadcast."""

    def __init__(self):
        self.readings = []
        self.weather = []

    def emit_telemetry_reading(self, payload):
        self.readings.append(payload)

    def emit_weather_update(self, payload):
        self.weather.append(payload)


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def ingestor(store, controller, fake_mqtt, emitter, state_lock, clock):
    return TelemetryIngestor(
        store,
        controller,
        mqtt_client=fake_mqtt,
        topic=SENSOR_TOPIC,
        emitter=emitter,
        lock=state_lock,
        clock=clock,
    )


# ========================== Application Fixtures ===========================


@pytest.fixture()
def app_config(tmp_path, monkeypatch):
    monkeypatch.setenv("FARMGATE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("FARMGATE_ENABLE_MQTT", "false")
    monkeypatch.delenv("FARMGATE_OPENWEATHER_API_KEY", raising=False)
    return AppConfig()


@pytest.fixture()
def container(app_config, fake_mqtt):
    from app.services.container import ServiceContainer

    built = ServiceContainer.build(app_config, mqtt_client=fake_mqtt)
    yield built
    built.scheduler.stop()


@pytest.fixture()
def app(container, tmp_path, monkeypatch):
    from app import create_app

    monkeypatch.setenv("FARMGATE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("FARMGATE_ENABLE_MQTT", "false")
    flask_app = create_app(container=container)
    flask_app.config["TESTING"] = True
    return flask_app

