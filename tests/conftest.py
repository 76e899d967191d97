"""Pytest shared fixtures for the provisioning service tests."""
import json
import os
import pathlib
import sys
import time
from typing import Any, Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import jwt
import pytest
import requests

from school_admin.config.settings import AppConfig
from school_admin.core.supabase.admin import build_privileged_client
from school_admin.flask_app import create_app

SUPABASE_URL = "https://project-ref.supabase.co"
JWT_SECRET = "test-project-jwt-secret-with-at-least-32-chars"

SERVICE_ROLE_KEY = jwt.encode(
    {"iss": "supabase", "ref": "project-ref", "role": "service_role", "iat": 1700000000},
    JWT_SECRET,
    algorithm="HS256",
)
ANON_KEY = jwt.encode(
    {"iss": "supabase", "ref": "project-ref", "role": "anon", "iat": 1700000000},
    JWT_SECRET,
    algorithm="HS256",
)


# ─────────────────────────────────────────────────────────────────────────────
# Isolation
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep tests off the network and away from real secrets and audit files."""
    monkeypatch.setenv("AUDIT_LOG_DIR", str(tmp_path / "audit"))
    monkeypatch.delenv("AUDIT_LOG_SIGNING_KEY", raising=False)
    monkeypatch.delenv("AUDIT_LOG_SIGNING_KEY_FILE", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)

    def _no_post(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    def _no_get(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    monkeypatch.setattr(requests, "post", _no_post)
    monkeypatch.setattr(requests, "get", _no_get)


# ─────────────────────────────────────────────────────────────────────────────
# Stub Supabase services
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        if text is not None:
            self.text = text
        else:
            self.text = json.dumps(payload) if payload is not None else ""

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class StubSupabase:
    """Records outbound calls and replays a configured outcome."""

    def __init__(self):
        self.calls = []
        self.response = StubResponse(200, {"id": "user-123", "email": "demo@example.com", "user_metadata": {}})
        self.error: Optional[Exception] = None

    def respond(self, status_code: int, payload: Any = None, text: Optional[str] = None) -> None:
        self.response = StubResponse(status_code, payload, text)
        self.error = None

    def fail_with(self, error: Exception) -> None:
        self.error = error

    def __call__(self, url, *args, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last_call(self) -> dict:
        return self.calls[-1]


@pytest.fixture()
def auth_service(monkeypatch):
    """Stub for the auth admin API (requests.post)."""
    stub = StubSupabase()
    monkeypatch.setattr(requests, "post", stub)
    return stub


@pytest.fixture()
def rest_service(monkeypatch):
    """Stub for PostgREST reads (requests.get)."""
    stub = StubSupabase()
    stub.respond(200, [])
    monkeypatch.setattr(requests, "get", stub)
    return stub


# ─────────────────────────────────────────────────────────────────────────────
# Configuration and clients
# ─────────────────────────────────────────────────────────────────────────────
def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=False,
        supabase_url=SUPABASE_URL,
        supabase_anon_key=ANON_KEY,
        supabase_jwt_secret=JWT_SECRET,
        jwt_audience="authenticated",
        provisioning_admin_roles=["super_admin"],
        request_timeout=2.0,
        password_min_length=8,
        trusted_proxy_ips="127.0.0.1/32,::1/128",
    )
    base.update(overrides)
    return AppConfig(**base)


@pytest.fixture()
def app_config():
    return make_config()


@pytest.fixture()
def admin_client():
    return build_privileged_client(SUPABASE_URL, SERVICE_ROLE_KEY, timeout=2.0)


@pytest.fixture()
def app(app_config, admin_client):
    flask_app = create_app(app_config, admin_client=admin_client)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# Caller tokens
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def make_access_token():
    """Factory for Supabase-style access tokens."""

    def _make(
        role: Optional[str] = "super_admin",
        *,
        sub: str = "admin-uid-1",
        secret: str = JWT_SECRET,
        audience: str = "authenticated",
        exp_offset: int = 3600,
        metadata_source: str = "app_metadata",
        extra_claims: Optional[dict] = None,
    ) -> str:
        now = int(time.time())
        payload = {
            "sub": sub,
            "aud": audience,
            "role": "authenticated",
            "iat": now,
            "exp": now + exp_offset,
        }
        if role is not None:
            payload[metadata_source] = {"role": role}
        payload.update(extra_claims or {})
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture()
def admin_headers(make_access_token):
    return {"Authorization": f"Bearer {make_access_token()}"}


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "critical: marks tests as critical security tests (P0 priority)"
    )


@pytest.fixture()
def service_role_key():
    return SERVICE_ROLE_KEY


@pytest.fixture()
def anon_key():
    return ANON_KEY


@pytest.fixture()
def config_factory():
    return make_config
