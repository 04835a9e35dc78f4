"""Health endpoints and request context."""

import pytest


@pytest.mark.integration
def test_customer_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "Garage Broker Running"}


@pytest.mark.integration
def test_catalog_health(catalog_api):
    assert catalog_api.get("/").json() == {"status": "Garage Catalog Running"}


@pytest.mark.integration
def test_request_id_is_generated(client):
    assert client.get("/").headers["X-Request-ID"]


@pytest.mark.integration
def test_request_id_is_propagated(client):
    response = client.get("/", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.integration
def test_unknown_route_uses_the_error_envelope(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": None,
        "data": None,
        "error": {"code": "NOT_FOUND", "message": "Not Found"},
    }
