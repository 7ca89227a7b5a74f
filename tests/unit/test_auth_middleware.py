"""
Unit tests for HTTP Basic authentication middleware.

Tests cover:
- Credential parsing
- Valid and invalid credentials
- Malformed Authorization headers
- Public path access
- Username dependency
"""

import base64

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from app.middleware.auth import BasicAuthMiddleware, get_current_username, parse_credentials


TEST_CREDENTIALS = "admin:s3cret:with-colon"


def basic(user: str, password: str) -> dict:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def build_app(credentials: str) -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(
        BasicAuthMiddleware,
        credentials=credentials,
        realm="test",
        public_paths=["/health"],
    )

    @test_app.get("/health")
    async def health():
        """Public endpoint."""
        return {"status": "healthy"}

    @test_app.get("/protected")
    async def protected(request: Request):
        return {"username": request.state.username}

    @test_app.get("/whoami")
    async def whoami(username: str = Depends(get_current_username)):
        return {"username": username}

    return test_app


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(build_app(TEST_CREDENTIALS))


class TestParseCredentials:

    def test_password_may_contain_colons(self):
        assert parse_credentials("admin:a:b") == ("admin", "a:b")

    def test_empty_password_allowed(self):
        assert parse_credentials("admin:") == ("admin", "")

    @pytest.mark.parametrize("value", ["", "admin", ":password"])
    def test_invalid(self, value):
        assert parse_credentials(value) is None


class TestBasicAuthMiddleware:

    def test_valid_credentials(self, client):
        response = client.get("/protected", headers=basic("admin", "s3cret:with-colon"))

        assert response.status_code == 200
        assert response.json() == {"username": "admin"}

    def test_missing_header(self, client):
        response = client.get("/protected")

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"
        assert response.headers["WWW-Authenticate"] == 'Basic realm="test"'

    def test_wrong_password(self, client):
        response = client.get("/protected", headers=basic("admin", "wrong"))

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_wrong_user(self, client):
        response = client.get("/protected", headers=basic("root", "s3cret:with-colon"))

        assert response.status_code == 401

    @pytest.mark.parametrize("header", ["Bearer abc", "Basic", "Basic !!!notbase64"])
    def test_malformed_header(self, client, header):
        response = client.get("/protected", headers={"Authorization": header})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid authorization header"

    def test_public_path(self, client):
        response = client.get("/health")

        assert response.status_code == 200

    def test_dependency_returns_username(self, client):
        response = client.get("/whoami", headers=basic("admin", "s3cret:with-colon"))

        assert response.json() == {"username": "admin"}

    def test_unconfigured_credentials_reject_everything(self):
        client = TestClient(build_app(":"))

        response = client.get("/protected", headers=basic("admin", "anything"))

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"


def test_get_current_username_without_auth():
    """The dependency refuses requests the middleware never authenticated."""
    app = FastAPI()

    @app.get("/whoami")
    async def whoami(username: str = Depends(get_current_username)):
        return {"username": username}

    response = TestClient(app).get("/whoami")

    assert response.status_code == 401
