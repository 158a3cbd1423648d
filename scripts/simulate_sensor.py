"""
Field device simulator: publishes random soil telemetry to the broker.

Usage:
    python scripts/simulate_sensor.py
    python scripts/simulate_sensor.py --mode basic --interval 2
    python scripts/simulate_sensor.py --host localhost --count 10

Modes:
    realistic  soilMoisture 300-900, pumpStatus ON above 700, temperature
               15.0-35.0 (sent as a string, like the firmware does) and
               humidity 40-95
    basic      soilMoisture 0-99 and a random pumpStatus, nothing else
"""
import argparse
import json
import logging
import random
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.hardware.mqtt.client_factory import create_mqtt_client

logger = logging.getLogger("simulate_sensor")

DEFAULT_BROKER = "broker.hivemq.com"
DEFAULT_TOPIC = "farm/plot1/sensor_data"


def realistic_payload(rng: random.Random) -> dict:
    soil_moisture = rng.randint(300, 900)
    return {
        "soilMoisture": soil_moisture,
        "pumpStatus": "ON" if soil_moisture > 700 else "OFF",
        "temperature": f"{rng.uniform(15, 35):.1f}",
        "humidity": rng.randint(40, 95),
    }


def basic_payload(rng: random.Random) -> dict:
    return {
        "soilMoisture": rng.randint(0, 99),
        "pumpStatus": rng.choice(["ON", "OFF"]),
    }


PAYLOAD_BUILDERS = {
    "realistic": realistic_payload,
    "basic": basic_payload,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Publish simulated soil telemetry over MQTT.")
    parser.add_argument("--host", default=DEFAULT_BROKER, help="MQTT broker host")
    parser.add_argument("--port", type=int, default=1883, help="MQTT broker port")
    parser.add_argument("--topic", default=DEFAULT_TOPIC, help="Telemetry topic")
    parser.add_argument("--mode", default="realistic", choices=sorted(PAYLOAD_BUILDERS), help="Payload profile")
    parser.add_argument("--interval", type=float, default=5.0, help="Seconds between messages")
    parser.add_argument("--count", type=int, default=0, help="Stop after N messages (0 = run forever)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable runs")
    return parser


def run(args: argparse.Namespace, client=None, sleep=time.sleep) -> int:
    """Publish messages until ``--count`` is reached or the user interrupts."""
    rng = random.Random(args.seed)
    build_payload = PAYLOAD_BUILDERS[args.mode]

    if client is None:
        client = create_mqtt_client()
        client.connect(args.host, args.port, 60)
        client.loop_start()
    logger.info("Simulator connected to %s:%s, publishing to %s", args.host, args.port, args.topic)

    sent = 0
    try:
        while args.count <= 0 or sent < args.count:
            payload = json.dumps(build_payload(rng))
            info = client.publish(args.topic, payload)
            if info.rc != 0:
                logger.error("Failed to publish simulated data (rc=%s)", info.rc)
            else:
                logger.info("Published: %s", payload)
            sent += 1
            if args.count <= 0 or sent < args.count:
                sleep(args.interval)
    except KeyboardInterrupt:
        logger.info("Simulator stopped by user")
    finally:
        client.loop_stop()
        client.disconnect()
    return sent


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args()
    try:
        run(args)
    except OSError as exc:
        logger.error("Simulator MQTT error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
