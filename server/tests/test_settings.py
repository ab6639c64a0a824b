"""
Tests for environment configuration and production-only behaviour.
"""

from pathlib import Path

from fastapi.testclient import TestClient

from main import create_app
from settings import DEFAULT_BUILD_DIR, Settings, load_settings


def test_load_settings_defaults():
    settings = load_settings({})
    assert settings.port == 5000
    assert settings.environment == "development"
    assert settings.is_production is False
    assert settings.cors_origins == ("*",)
    assert settings.frontend_build_dir == DEFAULT_BUILD_DIR


def test_load_settings_from_environment():
    settings = load_settings({
        "PORT": "8080",
        "APP_ENV": "Production",
        "CORS_ORIGINS": "http://localhost:3000, https://example.org",
        "FRONTEND_BUILD_DIR": "/srv/app/build",
        "LOG_LEVEL": "debug",
    })
    assert settings.port == 8080
    assert settings.is_production is True
    assert settings.cors_origins == ("http://localhost:3000", "https://example.org")
    assert settings.frontend_build_dir == Path("/srv/app/build")
    assert settings.log_level == "DEBUG"


def test_node_env_is_accepted_as_fallback():
    assert load_settings({"NODE_ENV": "production"}).is_production is True
    assert load_settings({"NODE_ENV": "production", "APP_ENV": "staging"}).is_production is False


def _build_dir(tmp_path: Path) -> Path:
    (tmp_path / "index.html").write_text("<html>app</html>", encoding="utf-8")
    (tmp_path / "static").mkdir()
    (tmp_path / "static" / "main.js").write_text("console.log('app')", encoding="utf-8")
    return tmp_path


def test_production_serves_frontend_build(tmp_path):
    client = TestClient(create_app(Settings(environment="production", frontend_build_dir=_build_dir(tmp_path))))

    response = client.get("/")
    assert response.status_code == 200
    assert "app" in response.text

    response = client.get("/static/main.js")
    assert response.status_code == 200
    assert "console.log" in response.text

    # client-side routes fall back to index.html
    response = client.get("/visualization/3d")
    assert response.status_code == 200
    assert "<html>" in response.text

    assert client.get("/api/does-not-exist").status_code == 404
    assert client.get("/api/plot3d/presets").json()["success"] is True


def test_production_hides_server_error_details(tmp_path):
    client = TestClient(create_app(Settings(environment="production", frontend_build_dir=tmp_path)))
    response = client.post("/api/plot3d/evaluate", json={"equation": "1/x", "x": 0, "y": 0})
    assert response.status_code == 500
    assert "details" not in response.json()

    # validation details describe the request and are kept
    response = client.post("/api/plot3d/evaluate", json={"equation": "x", "x": "a", "y": 0})
    assert response.status_code == 400
    assert response.json()["details"]["x"] == "invalid"


def test_production_without_build_keeps_api_root(tmp_path):
    client = TestClient(create_app(Settings(environment="production", frontend_build_dir=tmp_path / "missing")))
    assert client.get("/").json()["status"] == "running"


def test_development_includes_server_error_details():
    client = TestClient(create_app(Settings()))
    response = client.post("/api/plot3d/evaluate", json={"equation": "1/x", "x": 0, "y": 0})
    assert response.status_code == 500
    assert response.json()["details"]
