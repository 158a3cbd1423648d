"""
Helpers for constructing MQTT clients that work across paho-mqtt 1.x and 2.x.

paho-mqtt 2.x requires a callback API version; the gateway's handlers use the
VERSION1 signatures (``on_message(client, userdata, msg)``,
``on_connect(client, userdata, flags, rc)``), so that version is requested
whenever the enum exists.
"""
from __future__ import annotations

from typing import Any, Dict

import paho.mqtt.client as mqtt


def create_mqtt_client(client_id: str = "", **kwargs: Any) -> mqtt.Client:
    """
    Build an MQTT v3.1.1 client with VERSION1 callbacks.

    Args:
        client_id: Optional client identifier (empty lets the broker assign one).
        kwargs: Extra keyword arguments forwarded to the client constructor.
    """
    client_kwargs: Dict[str, Any] = {"client_id": client_id or ""}
    client_kwargs["protocol"] = kwargs.pop("protocol", getattr(mqtt, "MQTTv311", 4))
    client_kwargs.update(kwargs)

    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version is not None and hasattr(callback_api_version, "VERSION1"):
        client_kwargs["callback_api_version"] = callback_api_version.VERSION1

    return mqtt.Client(**client_kwargs)
