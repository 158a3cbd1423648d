"""
Telemetry arriving on the MQTT network thread.

Paho runs message callbacks on its own loop thread and only writes packets
queued from inside a callback after that callback returns. These tests drive
the ingest -> evaluate -> publish path from such a thread, first with a fake
loop and then with a real paho client against a loopback broker.
"""

import json
import socket
import struct
import threading
import time

from app.control_loops.irrigation_controller import IrrigationController
from app.domain.hysteresis import HysteresisThresholds
from app.enums.events import ControlOutcome
from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper
from app.services.hardware.command_publisher import CommandPublisher
from app.services.hardware.telemetry_ingestor import TelemetryIngestor
from app.services.telemetry_store import TelemetryStore

from conftest import (
    COMMAND_TOPIC,
    SENSOR_TOPIC,
    ManualClock,
    NetworkLoopClient,
    RecordingEmitter,
    build_wrapper,
)

DRY_OFF = json.dumps({"soilMoisture": 750, "pumpStatus": "OFF"}).encode("utf-8")


def _gateway(wrapper, clock, timeout_seconds=2.0):
    lock = threading.RLock()
    store = TelemetryStore(capacity=200, lock=lock)
    publisher = CommandPublisher(wrapper, topic=COMMAND_TOPIC, timeout_seconds=timeout_seconds)
    controller = IrrigationController(
        publisher,
        thresholds=HysteresisThresholds(dry_threshold=700, wet_threshold=400),
        cooldown_seconds=30,
        lock=lock,
        clock=clock,
    )
    emitter = RecordingEmitter()
    ingestor = TelemetryIngestor(
        store, controller, mqtt_client=wrapper, topic=SENSOR_TOPIC, emitter=emitter, lock=lock, clock=clock
    )
    return controller, ingestor, emitter


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


# ========================== Fake network loop ==============================


def test_command_from_loop_thread_counts_as_sent():
    dummy = NetworkLoopClient()
    wrapper = build_wrapper(dummy)
    clock = ManualClock()
    controller, ingestor, emitter = _gateway(wrapper, clock)
    ingestor.start()

    try:
        started = time.monotonic()
        dummy.deliver(SENSOR_TOPIC, DRY_OFF)
        elapsed = time.monotonic() - started
    finally:
        wrapper.disconnect()

    assert elapsed < 1.0
    assert emitter.readings[-1]["automation"]["outcome"] == ControlOutcome.COMMAND_SENT.value
    assert controller.last_command_time == clock()
    assert controller.status()["publish_failures"] == 0


def test_dry_readings_on_loop_thread_do_not_flood_commands():
    dummy = NetworkLoopClient()
    wrapper = build_wrapper(dummy)
    clock = ManualClock()
    controller, ingestor, _emitter = _gateway(wrapper, clock)
    ingestor.start()

    try:
        dummy.deliver(SENSOR_TOPIC, DRY_OFF)
        clock.advance(5)
        dummy.deliver(SENSOR_TOPIC, DRY_OFF)
        clock.advance(5)
        dummy.deliver(SENSOR_TOPIC, DRY_OFF)
    finally:
        wrapper.disconnect()

    commands = [
        json.loads(payload)["command"] for topic, payload, _q in dummy.published if topic == COMMAND_TOPIC
    ]
    assert commands == ["TURN_PUMP_ON"]
    assert controller.status()["cooldown_skips"] == 2


def test_publish_off_loop_thread_still_waits_for_delivery():
    dummy = NetworkLoopClient()
    wrapper = build_wrapper(dummy)

    try:
        assert wrapper.publish(COMMAND_TOPIC, "{}", timeout=1.0)
    finally:
        wrapper.disconnect()

    assert wrapper.health_status.successful_publishes == 1


# ========================== Real paho client ===============================


def _encode_remaining_length(length: int) -> bytes:
    encoded = bytearray()
    while True:
        byte, length = length % 128, length // 128
        encoded.append(byte | 0x80 if length else byte)
        if not length:
            return bytes(encoded)


class LoopbackBroker:
    """Single-client MQTT 3.1.1 broker with just enough protocol for paho."""

    def __init__(self):
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self.port = self._server.getsockname()[1]
        self.subscriptions: list[str] = []
        self.received: list[tuple[str, bytes]] = []
        self._conn = None
        self._send_lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, name="loopback-broker", daemon=True)
        self._thread.start()

    def _recv_exact(self, size: int) -> bytes:
        data = b""
        while len(data) < size:
            chunk = self._conn.recv(size - len(data))
            if not chunk:
                raise ConnectionError("client closed the connection")
            data += chunk
        return data

    def _read_remaining_length(self) -> int:
        multiplier, value = 1, 0
        while True:
            byte = self._recv_exact(1)[0]
            value += (byte & 0x7F) * multiplier
            if not byte & 0x80:
                return value
            multiplier *= 128

    def _send(self, packet: bytes) -> None:
        with self._send_lock:
            self._conn.sendall(packet)

    def _serve(self) -> None:
        try:
            self._conn, _addr = self._server.accept()
            while True:
                header = self._recv_exact(1)[0]
                length = self._read_remaining_length()
                body = self._recv_exact(length) if length else b""
                packet_type = header >> 4
                if packet_type == 1:  # CONNECT
                    self._send(b"\x20\x02\x00\x00")
                elif packet_type == 8:  # SUBSCRIBE
                    topic_len = struct.unpack("!H", body[2:4])[0]
                    self.subscriptions.append(body[4 : 4 + topic_len].decode("utf-8"))
                    self._send(b"\x90\x03" + body[:2] + b"\x00")
                elif packet_type == 3:  # PUBLISH, QoS 0
                    topic_len = struct.unpack("!H", body[:2])[0]
                    self.received.append((body[2 : 2 + topic_len].decode("utf-8"), body[2 + topic_len :]))
                elif packet_type == 12:  # PINGREQ
                    self._send(b"\xd0\x00")
                elif packet_type == 14:  # DISCONNECT
                    return
        except OSError:
            return

    def send_to_client(self, topic: str, payload: bytes) -> None:
        encoded_topic = topic.encode("utf-8")
        body = struct.pack("!H", len(encoded_topic)) + encoded_topic + payload
        self._send(b"\x30" + _encode_remaining_length(len(body)) + body)

    def close(self) -> None:
        for sock in (self._conn, self._server):
            if sock is None:
                continue
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()


def test_real_paho_loop_confirms_automatic_command():
    broker = LoopbackBroker()
    wrapper = MQTTClientWrapper(broker="127.0.0.1", port=broker.port)
    clock = ManualClock()
    controller, ingestor, _emitter = _gateway(wrapper, clock)

    try:
        ingestor.start()
        assert _wait_until(lambda: wrapper.connected and SENSOR_TOPIC in broker.subscriptions)

        broker.send_to_client(SENSOR_TOPIC, DRY_OFF)
        assert _wait_until(lambda: ingestor.stats["accepted"] == 1)
        assert _wait_until(lambda: any(topic == COMMAND_TOPIC for topic, _p in broker.received))

        clock.advance(5)
        broker.send_to_client(SENSOR_TOPIC, DRY_OFF)
        assert _wait_until(lambda: ingestor.stats["accepted"] == 2)
    finally:
        wrapper.disconnect()
        broker.close()

    status = controller.status()
    assert status["commands_sent"] == 1
    assert status["publish_failures"] == 0
    assert status["cooldown_skips"] == 1
    assert controller.last_command_time == clock.at(0)
    assert [json.loads(payload) for topic, payload in broker.received if topic == COMMAND_TOPIC] == [
        {"command": "TURN_PUMP_ON"}
    ]


def test_real_paho_keeps_retrying_when_broker_is_down():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        closed_port = sock.getsockname()[1]

    wrapper = MQTTClientWrapper(broker="127.0.0.1", port=closed_port)
    try:
        wrapper.subscribe(SENSOR_TOPIC, lambda *_: None)

        assert not wrapper.connected
        assert wrapper.client._thread is not None
        assert wrapper.client._thread.is_alive()
    finally:
        wrapper.disconnect()

    assert wrapper.client._thread is None
