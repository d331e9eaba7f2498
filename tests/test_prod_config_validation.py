import types

import pytest

from divebook import main


def _settings(**overrides):
    class Dummy:
        app_env = "prod"
        testing = False
        auth_secret_key = "a" * 32
        stripe_secret_key = "sk_live_configured"
        stripe_webhook_secret = "whsec_configured"

    settings_obj = Dummy()
    for key, value in overrides.items():
        setattr(settings_obj, key, value)
    return settings_obj


def _disable_pytest_shortcuts(monkeypatch):
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    monkeypatch.setattr(main, "sys", types.SimpleNamespace(argv=["divebook"]))


def test_validate_prod_config_rejects_missing_secrets(monkeypatch, caplog):
    settings_obj = _settings(
        auth_secret_key="dev-auth-secret",
        stripe_secret_key=None,
        stripe_webhook_secret="",
    )
    _disable_pytest_shortcuts(monkeypatch)

    with caplog.at_level("ERROR"):
        with pytest.raises(RuntimeError):
            main._validate_prod_config(settings_obj)

    details = [record.__dict__.get("extra", {}).get("detail") for record in caplog.records]
    errors = "\n".join(str(detail) for detail in details if detail)
    assert "AUTH_SECRET_KEY" in errors
    assert "STRIPE_SECRET_KEY" in errors
    assert "STRIPE_WEBHOOK_SECRET" in errors


def test_validate_prod_config_accepts_complete_config(monkeypatch):
    _disable_pytest_shortcuts(monkeypatch)

    main._validate_prod_config(_settings())


def test_validate_prod_config_skipped_in_dev(monkeypatch):
    _disable_pytest_shortcuts(monkeypatch)

    main._validate_prod_config(_settings(app_env="dev", stripe_secret_key=None, auth_secret_key="dev-auth-secret"))
