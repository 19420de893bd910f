"""
Tests for the app-level endpoints (root and health checks) and the
startup/shutdown hooks.
"""

import os
from unittest.mock import MagicMock, patch

import pytest

os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "header.payload.signature")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

from fastapi.testclient import TestClient

from app.config import get_settings
from app.db import get_supabase_admin
from app.dependencies import get_email_sender, get_purchase_store
from app.main import app
from app.services.purchase_store import PurchaseStore


@pytest.fixture()
def store():
    return MagicMock(spec=PurchaseStore)


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_purchase_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Checkout Webhook API", "version": "0.1.0"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_db_ok(client, store):
    response = client.get("/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "reachable"}
    store.ping.assert_called_once()


def test_health_db_unreachable_returns_503(client, store):
    store.ping.side_effect = RuntimeError("connection refused")

    response = client.get("/health/db")

    assert response.status_code == 503
    assert "connection refused" in response.json()["detail"]


# ---------------------------------------------------------------------------
# Startup / shutdown
# ---------------------------------------------------------------------------

REQUIRED_ENV = {
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "header.payload.signature",
    "RESEND_API_KEY": "re_test_key",
}


def _clear_caches():
    for cached in (get_settings, get_supabase_admin, get_purchase_store, get_email_sender):
        cached.cache_clear()


@pytest.fixture()
def fresh_caches():
    """Settings and collaborators are rebuilt from the patched environment."""
    app.dependency_overrides.clear()
    _clear_caches()
    yield
    _clear_caches()


@pytest.mark.parametrize("missing", sorted(REQUIRED_ENV))
def test_startup_fails_fast_on_missing_variable(fresh_caches, missing):
    env = {k: v for k, v in REQUIRED_ENV.items() if k != missing}

    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(ValueError, match=missing):
            with TestClient(app):
                pass


def test_startup_builds_collaborators_and_shutdown_closes_sender(fresh_caches):
    with patch.dict(os.environ, REQUIRED_ENV, clear=True), \
            patch("app.dependencies.get_supabase_admin", return_value=MagicMock()):
        with TestClient(app) as client:
            assert get_settings.cache_info().currsize == 1
            assert get_purchase_store.cache_info().currsize == 1
            sender = get_email_sender()
            assert client.get("/health").status_code == 200
            assert not sender._client.is_closed

    assert sender._client.is_closed
    assert get_email_sender.cache_info().currsize == 0
