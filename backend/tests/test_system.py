# Overview: Pytest coverage for health endpoints and request plumbing.

import pytest

from storefront import create_app


pytestmark = pytest.mark.smoke


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.json["status"] == "ok"
    assert response.json["timestamp"].endswith("Z")


def test_detailed_health(client, shopper_token, product_a):
    response = client.get('/api/health/detailed')
    assert response.status_code == 200
    body = response.json
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["details"] == {"products": 1, "users": 1}
    assert body["checks"]["session_service"]["details"]["active_sessions"] == 1
    assert "subscribers" in body["event_stream"]


def test_unknown_api_route(client):
    assert client.get('/api/nothing-here').status_code == 404


def test_cors_allows_configured_origin(client):
    response = client.get('/api/health', headers={"Origin": "http://localhost:5173"})
    assert response.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"
    assert response.headers.get("Access-Control-Allow-Credentials") == "true"


def test_cors_ignores_other_origins(client):
    response = client.get('/api/health', headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in response.headers


def test_create_app_accepts_mapping():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'other',
    })
    assert app.config["SECRET_KEY"] == "other"
    assert "products" in app.blueprints
    assert "events" in app.blueprints
