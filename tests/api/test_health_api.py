from fastapi.testclient import TestClient

from app.config import SERVICES


def test_get_health(client: TestClient):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_health_services_endpoint(client: TestClient, requests_mock):
    for service_name, conf in SERVICES.items():
        url = conf["base_url"].rstrip("/") + conf.get("health_path", "/health")
        requests_mock.get(url, status_code=200)

    response = client.get("/api/v1/health/services")
    assert response.status_code == 200
    payload = response.json()

    assert set(payload.keys()) == set(SERVICES.keys())
    for service_name in SERVICES.keys():
        assert payload[service_name]["ok"] is True
        assert payload[service_name]["status_code"] == 200


def test_health_queue_endpoint(client: TestClient, redis_client):
    response = client.get("/api/v1/health/queue")
    assert response.json() == {"ok": True}
    redis_client.ping.assert_awaited_once()
