"""Tests for settings and logging configuration."""

import logging
from pathlib import Path

import pytest

from catalog_authz.logging_config import configure_app_logging
from catalog_authz.settings import Settings


def test_settings_read_prefixed_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("AUTHZ_POLICY_PATH", str(tmp_path / "p.yaml"))
    monkeypatch.setenv("AUTHZ_OWNER_BYPASS", "true")
    monkeypatch.setenv("AUTHZ_DB_URL", "sqlite:///:memory:")

    settings = Settings()

    assert settings.owner_bypass is True
    assert settings.resolved_policy_path() == tmp_path / "p.yaml"
    assert settings.resolved_db_url() == "sqlite:///:memory:"


def test_settings_defaults_point_at_bundled_files(monkeypatch):
    for name in ("AUTHZ_POLICY_PATH", "AUTHZ_DB_URL", "AUTHZ_OWNER_BYPASS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.owner_bypass is False
    assert settings.resolved_policy_path().parts[-2:] == ("config", "policies.yaml")
    assert settings.resolved_policy_path().exists()
    assert settings.resolved_db_url().endswith(str(Path("catalog.db")))


def test_configure_app_logging_sets_package_level():
    logger = configure_app_logging("debug")
    try:
        assert logger.name == "catalog_authz"
        assert logging.getLogger("catalog_authz.engine.authorizer").getEffectiveLevel() == logging.DEBUG
    finally:
        logger.setLevel(logging.NOTSET)


def test_configure_app_logging_rejects_unknown_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_app_logging("chatty")
