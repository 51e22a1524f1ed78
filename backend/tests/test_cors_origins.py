from fastapi.testclient import TestClient

from backend.app.main import (
    LOCAL_DEVELOPMENT_ORIGINS,
    _load_allowed_origins_from_env,
    _resolve_allowed_origins,
    _split_raw_origins,
    app,
)


def test_split_raw_origins_accepts_commas_and_whitespace():
    raw = "http://localhost:5173, https://shop.example.com http://0.0.0.0:3000"
    assert _split_raw_origins(raw) == [
        "http://localhost:5173",
        "https://shop.example.com",
        "http://0.0.0.0:3000",
    ]


def test_load_allowed_origins_from_env_deduplicates(monkeypatch):
    monkeypatch.setenv(
        "BACKEND_ALLOWED_ORIGINS",
        "https://shop.example.com/ https://shop.example.com http://localhost:3000",
    )

    origins = _load_allowed_origins_from_env()

    assert origins == ["http://localhost:3000", "https://shop.example.com"]


def test_local_development_origins_are_always_allowed(monkeypatch):
    monkeypatch.setenv("BACKEND_ALLOWED_ORIGINS", "https://shop.example.com")

    origins = _resolve_allowed_origins()

    assert "https://shop.example.com" in origins
    assert LOCAL_DEVELOPMENT_ORIGINS.issubset(origins)


def test_services_endpoint_includes_cors_headers_for_local_dev_origin():
    client = TestClient(app)
    origin = "http://localhost:5173"

    response = client.options(
        "/services",
        headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == origin
