import json
import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT / "scripts") not in sys.path:
    sys.path.insert(0, str(ROOT / "scripts"))

import simulate_sensor  # noqa: E402
from app.services.hardware.telemetry_ingestor import parse_payload  # noqa: E402

from conftest import SENSOR_TOPIC, DummyClient  # noqa: E402


def test_realistic_payload_ranges():
    rng = random.Random(7)
    for _ in range(50):
        payload = simulate_sensor.realistic_payload(rng)
        assert 300 <= payload["soilMoisture"] <= 900
        assert payload["pumpStatus"] == ("ON" if payload["soilMoisture"] > 700 else "OFF")
        assert isinstance(payload["temperature"], str)
        assert 15.0 <= float(payload["temperature"]) <= 35.0
        assert 40 <= payload["humidity"] <= 95


def test_basic_payload_ranges():
    rng = random.Random(7)
    for _ in range(50):
        payload = simulate_sensor.basic_payload(rng)
        assert 0 <= payload["soilMoisture"] <= 99
        assert payload["pumpStatus"] in ("ON", "OFF")
        assert set(payload) == {"soilMoisture", "pumpStatus"}


def test_run_publishes_messages_the_gateway_accepts():
    args = simulate_sensor.build_parser().parse_args(["--count", "3", "--seed", "1", "--interval", "0"])
    dummy = DummyClient()
    sleeps = []

    sent = simulate_sensor.run(args, client=dummy, sleep=sleeps.append)

    assert sent == 3
    assert len(sleeps) == 2
    assert [topic for topic, _p, _q in dummy.published] == [SENSOR_TOPIC] * 3
    for _topic, payload, _qos in dummy.published:
        parsed = parse_payload(payload)
        assert parsed.temperature == float(json.loads(payload)["temperature"])
