"""
Configuration parsing and the production startup guard.
"""
from __future__ import annotations

import pytest

from planner.config import DEFAULT_ADMIN_PASSWORD, ensure_secure_config_on_startup, load_settings

from utils.fakes import make_settings

_PROD_OK = dict(
    environment="prod",
    store_backend="db",
    database_url="postgresql://planner:pw@db:5432/planner?sslmode=require",
    session_secret="x" * 48,
    admin_password="A-Real-Admin-Password-42",
    blob_backend="supabase",
    supabase_url="https://project.supabase.co",
    supabase_service_role_key="service-role",
    paystack_secret_key="sk_live_123",
)


def test_defaults_are_dev_friendly(monkeypatch: pytest.MonkeyPatch):
    for var in ("PLANNER_ENV", "PLANNER_STORE", "DATABASE_URL", "SESSION_SECRET", "ADMIN_EMAIL", "BLOB_BACKEND"):
        monkeypatch.delenv(var, raising=False)
    cfg = load_settings()
    assert cfg.environment == "dev"
    assert cfg.store_backend == "memory"
    assert cfg.admin_email == "admin@aplusplanner.com"
    assert cfg.payment_currency == "GHS"
    ensure_secure_config_on_startup(cfg)


def test_db_store_requires_database_url(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PLANNER_STORE", "db")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        load_settings()


@pytest.mark.parametrize("var, value", [("SESSION_TTL_SECONDS", "soon"), ("SMTP_PORT", "70000"), ("PLANNER_STORE", "redis")])
def test_malformed_values_raise(monkeypatch: pytest.MonkeyPatch, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(ValueError):
        load_settings()


def test_secure_production_config_passes():
    ensure_secure_config_on_startup(make_settings(**_PROD_OK))


@pytest.mark.parametrize(
    "override",
    [
        {"session_secret": "short"},
        {"admin_password": DEFAULT_ADMIN_PASSWORD},
        {"store_backend": "memory"},
        {"blob_backend": "memory"},
        {"database_url": "postgresql://planner@db/planner?sslmode=disable"},
        {"paystack_secret_key": None},
    ],
)
def test_insecure_production_config_refuses_to_start(override):
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup(make_settings(**{**_PROD_OK, **override}))


def test_staging_is_treated_like_production():
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup(make_settings(environment="staging"))
