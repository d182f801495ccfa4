from fastapi.testclient import TestClient

from estatehub.core.app import create_app


def test_healthcheck_returns_ok() -> None:
    app = create_app()
    client = TestClient(app)

    response = client.get("/api/healthz")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["app"] == "EstateHub Back Office API"


def test_root_reports_service_name() -> None:
    client = TestClient(create_app())

    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "EstateHub Back Office API"
