"""
Tests for the relying party service.
"""

from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from shared.config import ServiceConfig
from shared.errors import ConfigurationError
from service_oidc.app.main import create_app, default_verify
from service_oidc.app.profile import Profile


@pytest.fixture
def config():
    """Service configuration for the reference provider."""
    return ServiceConfig(
        "oidc",
        8020,
        issuer="https://op.example",
        authorization_url="https://op.example/authorize",
        token_url="https://op.example/token",
        userinfo_url="https://op.example/userinfo",
        client_id="abc",
        client_secret="secret",
        pkce="S256",
    )


@pytest.fixture
def client(config):
    """Create test client."""
    return TestClient(create_app(config=config))


def test_root_endpoint(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "oidc"
    assert data["version"] == "1.0.0"


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "oidc"
    assert data["status"] == "ok"
    assert data["dependencies"] == {"openid_provider": "configured"}


def test_metrics_endpoint(client):
    """Test Prometheus metrics are exposed."""
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "health_check_total" in response.text


def test_me_without_login(client):
    """Test no user is bound to a fresh session."""
    response = client.get("/me")
    assert response.status_code == 401
    assert response.json() == {"authenticated": False}


def test_login_redirects(client):
    """Test /login redirects to the authorization endpoint."""
    response = client.get("/login", params={"prompt": "login", "scope": "profile email"}, follow_redirects=False)

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("https://op.example/authorize?")
    query = parse_qs(urlsplit(location).query)
    assert query["redirect_uri"] == ["http://testserver/callback"]
    assert query["scope"] == ["openid profile email"]
    assert query["prompt"] == ["login"]
    assert query["code_challenge_method"] == ["S256"]
    assert len(query["state"][0]) == 24


def test_callback_access_denied(client):
    """Test a refused consent is reported as unauthenticated."""
    response = client.get("/callback", params={"error": "access_denied", "error_description": "User cancelled"})
    assert response.status_code == 401
    assert response.json() == {"authenticated": False, "message": "User cancelled"}


def test_callback_authorization_error(client):
    """Test OP errors are rendered through the error handler."""
    response = client.get("/callback", params={"error": "temporarily_unavailable"})
    assert response.status_code == 503
    data = response.json()
    assert data["code"] == "AUTHORIZATION_ERROR"
    assert data["details"]["error"] == "temporarily_unavailable"


def test_callback_without_pending_request(client):
    """Test a callback the session knows nothing about."""
    response = client.get("/callback", params={"code": "c", "state": "s"})
    assert response.status_code == 403
    assert response.json()["message"] == "Unable to verify authorization request state."


def test_callback_state_mismatch(client):
    """Test a callback with another handle than the one issued."""
    client.get("/login", follow_redirects=False)
    response = client.get("/callback", params={"code": "c", "state": "forged"})
    assert response.status_code == 403
    assert response.json()["message"] == "Invalid authorization request state."


def test_default_verify():
    """Test the default verify keeps a JSON-safe summary."""
    profile = Profile.parse({"sub": "1", "name": "Jane", "preferred_username": "jane", "email": "j@example.com"})
    assert default_verify("https://op.example", profile) == {
        "issuer": "https://op.example",
        "id": "1",
        "username": "jane",
        "display_name": "Jane",
        "email": "j@example.com",
    }


def test_app_metadata(config):
    """Test the service describes itself as the relying party."""
    app = create_app(config=config)
    assert app.title == "OpenID Connect Relying Party"
    assert app.version == "1.0.0"


def test_error_without_status_is_bad_request(config):
    """Test relying party errors without their own status answer 400."""
    app = create_app(config=config)

    @app.get("/broken")
    async def broken():
        raise ConfigurationError("Missing client_id")

    response = TestClient(app).get("/broken")

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "CONFIGURATION_ERROR"
    assert data["message"] == "Missing client_id"
