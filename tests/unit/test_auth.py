"""
Unit tests for backend/auth.py

Part of PT-103: Caller authentication
"""

import asyncio
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException

from backend import auth
from backend.settings import Settings

SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def settings(monkeypatch):
    settings = Settings(api_keys="sk_test,sk_other", jwt_secret=SECRET, _env_file=None)
    monkeypatch.setattr(auth, "get_settings", lambda: settings)
    return settings


def service_token(sub="clinician-7", *, expires_in=timedelta(hours=1), secret=SECRET):
    payload = {"exp": datetime.now(timezone.utc) + expires_in}
    if sub:
        payload["sub"] = sub
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.mark.unit
class TestApiKey:

    def test_plain_key_is_admin(self, settings):
        assert auth.validate_api_key("sk_test") == "admin"

    def test_key_with_user(self, settings):
        assert auth.validate_api_key("sk_other:clinician_42") == "clinician_42"

    def test_unknown_key(self, settings):
        with pytest.raises(HTTPException) as exc_info:
            auth.validate_api_key("sk_wrong")
        assert exc_info.value.status_code == 401

    def test_no_keys_configured(self, monkeypatch):
        monkeypatch.setattr(auth, "get_settings", lambda: Settings(_env_file=None, api_keys=""))
        with pytest.raises(HTTPException):
            auth.validate_api_key("sk_test")


@pytest.mark.unit
class TestJwt:

    def test_service_jwt(self, settings):
        assert auth.validate_jwt(f"Bearer {service_token()}") == "clinician-7"

    def test_expired(self, settings):
        token = service_token(expires_in=timedelta(hours=-1))
        with pytest.raises(HTTPException, match="expired"):
            auth.validate_jwt(f"Bearer {token}")

    def test_wrong_secret(self, settings):
        token = service_token(secret="another-secret-with-enough-length-too")
        with pytest.raises(HTTPException) as exc_info:
            auth.validate_jwt(f"Bearer {token}")
        assert exc_info.value.status_code == 401

    def test_missing_subject(self, settings):
        with pytest.raises(HTTPException, match="user ID"):
            auth.validate_jwt(f"Bearer {service_token(sub=None)}")

    def test_requires_bearer_prefix(self, settings):
        with pytest.raises(HTTPException, match="format"):
            auth.validate_jwt(service_token())

    def test_garbage_token(self, settings):
        with pytest.raises(HTTPException, match="Invalid token format"):
            auth.validate_jwt("Bearer not-a-jwt")


@pytest.mark.unit
class TestGetCurrentUser:

    def test_api_key_preferred(self, settings):
        user = asyncio.run(auth.get_current_user(
            authorization=f"Bearer {service_token()}", x_api_key="sk_test:clinician-1"
        ))
        assert user == "clinician-1"

    def test_missing_credentials(self, settings):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(auth.get_current_user(authorization=None, x_api_key=None))
        assert exc_info.value.status_code == 401
