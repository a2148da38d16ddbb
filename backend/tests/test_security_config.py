import importlib
import sys

import pytest

STRONG_KEY = "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


def reload_config_module():
    config_module = sys.modules.get("garage_ui.config")
    if config_module:
        config_module.get_settings.cache_clear()
        sys.modules.pop("garage_ui.config", None)
    return importlib.import_module("garage_ui.config")


def test_missing_secret_key_fails_closed(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="secret_key|SECRET_KEY"):
        config_module.get_settings()


def test_weak_secret_key_fails_closed(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "changeme-in-production")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="secret_key|SECRET_KEY"):
        config_module.get_settings()


def test_strong_secret_key_passes(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", STRONG_KEY)

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()
    settings = config_module.get_settings()

    assert settings.secret_key
    assert settings.access_token_expire_seconds == 900
    assert settings.refresh_token_expire_seconds == 7200


def test_lifetimes_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", STRONG_KEY)
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_SECONDS", "60")
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRE_SECONDS", "3600")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()
    settings = config_module.get_settings()

    assert settings.access_token_expire_seconds == 60
    assert settings.refresh_token_expire_seconds == 3600


def test_non_positive_lifetime_fails(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", STRONG_KEY)
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRE_SECONDS", "0")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="lifetimes"):
        config_module.get_settings()
