import json

import pytest

from conftest import COMMAND_TOPIC


def _ingest(container, **fields):
    return container.telemetry_ingestor.ingest(json.dumps(fields).encode("utf-8"))


def _published_commands(dummy_client):
    return [json.loads(p)["command"] for topic, p, _q in dummy_client.published if topic == COMMAND_TOPIC]


def test_latest_before_any_reading(client):
    response = client.get("/api/v1/data/latest")

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    data = body["data"]
    assert data["soilMoisture"] is None
    assert data["pumpStatus"] == "OFF"
    assert data["lastCommandTime"] is None
    assert data["cooldownSeconds"] == 30
    assert data["automationEnabled"] is True


def test_latest_reflects_most_recent_reading(client, container):
    _ingest(container, soilMoisture=500, pumpStatus="OFF", temperature="19.5", humidity=80)
    _ingest(container, soilMoisture=520, pumpStatus="OFF")

    data = client.get("/api/v1/data/latest").get_json()["data"]

    assert data["soilMoisture"] == 520
    assert data["temperature"] is None
    assert data["timestamp"] is not None


def test_history_is_oldest_first(client, container):
    for moisture in (450, 460, 470):
        _ingest(container, soilMoisture=moisture, pumpStatus="OFF")

    data = client.get("/api/v1/data/history").get_json()["data"]

    assert [r["soilMoisture"] for r in data] == [450, 460, 470]


def test_manual_command_is_published(client, dummy_client):
    response = client.post("/api/v1/command", json={"action": "TURN_PUMP_ON"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["message"] == "Command 'TURN_PUMP_ON' sent."
    assert body["data"]["lastCommandTime"] is not None
    assert _published_commands(dummy_client) == ["TURN_PUMP_ON"]


@pytest.mark.parametrize("payload", [{}, {"action": ""}, {"action": "   "}, {"action": None}, {"action": 5}])
def test_manual_command_requires_action(client, dummy_client, payload):
    response = client.post("/api/v1/command", json=payload)

    assert response.status_code == 400
    body = response.get_json()
    assert body["ok"] is False
    assert body["error"]["message"] == "Action is required in request body."
    assert dummy_client.published == []


def test_manual_command_without_json_body(client):
    response = client.post("/api/v1/command", data="action=TURN_PUMP_ON")

    assert response.status_code == 400


def test_manual_command_publish_failure(client, container, dummy_client):
    dummy_client.publish_rc = 4

    response = client.post("/api/v1/command", json={"action": "TURN_PUMP_OFF"})

    assert response.status_code == 503
    assert response.get_json()["error"]["message"] == "Failed to send command via MQTT"
    # Cooldown is reset even though the publish failed
    assert container.irrigation_controller.status()["last_command_time"] is not None


def test_manual_command_suppresses_automation(client, container, dummy_client):
    client.post("/api/v1/command", json={"action": "TURN_PUMP_OFF"})

    _ingest(container, soilMoisture=850, pumpStatus="OFF")

    assert _published_commands(dummy_client) == ["TURN_PUMP_OFF"]


def test_weather_latest_is_null_before_first_fetch(client):
    response = client.get("/api/v1/weather/latest")

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["temperature"] is None
    assert data["timestamp"] is None


def test_unversioned_api_paths_alias_v1(client, container):
    _ingest(container, soilMoisture=610, pumpStatus="ON")

    latest = client.get("/api/data/latest")
    history = client.get("/api/data/history")
    weather = client.get("/api/weather/latest")

    assert latest.status_code == 200
    assert latest.get_json()["data"]["soilMoisture"] == 610
    assert len(history.get_json()["data"]) == 1
    assert weather.status_code == 200


def test_health_reports_components(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["status"] == "healthy"
    assert data["mqtt"]["is_connected"] is True
    assert data["automation"]["cooldown_seconds"] == 30
    assert data["scheduler"]["jobs"][0]["job_id"] == "weather.refresh"
    assert data["weather"]["available"] is False


def test_ping(client):
    assert client.get("/api/v1/health/ping").get_json()["data"]["status"] == "ok"


def test_unknown_api_route_returns_json_404(client):
    response = client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.get_json()["ok"] is False


def test_api_allows_cross_origin_requests(client):
    response = client.get("/api/v1/data/latest", headers={"Origin": "http://dashboard.local"})

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_api_answers_cors_preflight(client):
    response = client.options(
        "/api/v1/command",
        headers={
            "Origin": "http://dashboard.local",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in response.headers["Access-Control-Allow-Methods"]


def test_cors_origins_follow_configuration(container):
    from app import create_app

    flask_app = create_app(
        {"socketio_cors_origins": "http://dashboard.local, http://ops.local"}, container=container
    )
    test_client = flask_app.test_client()

    allowed = test_client.get("/api/v1/data/latest", headers={"Origin": "http://ops.local"})
    refused = test_client.get("/api/v1/data/latest", headers={"Origin": "http://elsewhere.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "http://ops.local"
    assert "Access-Control-Allow-Origin" not in refused.headers
