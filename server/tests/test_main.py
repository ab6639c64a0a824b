"""
Tests for the application shell: root, health check and error envelopes.
"""

from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def test_root_endpoint():
    """Test the root endpoint describes the running service."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "running"
    assert data["version"] == "1.0.0"


def test_health_check_endpoint():
    """Test the health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "services" in data
    assert data["services"]["fastapi"] == "OK"
    assert data["services"]["sympy"].startswith("OK")
    assert data["services"]["lxml"].startswith("OK")


def test_malformed_body_is_a_validation_error():
    """Body validation failures use the 400 error envelope instead of 422."""
    response = client.post("/api/math/solve", json={"expression": ["not", "a", "string"]})
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["type"] == "validation"
    assert data["error"] == "Invalid request body"
    assert data["details"]
    assert "timestamp" in data


def test_cors_headers_present():
    response = client.options(
        "/api/math/solve",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
