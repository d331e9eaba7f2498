from decimal import Decimal

import pytest
from pydantic import ValidationError

from divebook.settings import Settings


@pytest.mark.parametrize(
    "env_value, expected",
    [
        (None, []),
        ("https://example.com", ["https://example.com"]),
        ("https://a.com, https://b.com", ["https://a.com", "https://b.com"]),
        ('["https://a.com","https://b.com"]', ["https://a.com", "https://b.com"]),
    ],
)
def test_cors_origins_env_parsing(monkeypatch, env_value, expected):
    if env_value is None:
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
    else:
        monkeypatch.setenv("CORS_ORIGINS", env_value)

    settings = Settings(_env_file=None)

    assert settings.cors_origins == expected


@pytest.mark.parametrize(
    "env_value, expected",
    [
        (None, ["EUR", "USD", "GBP", "CHF"]),
        ("eur, usd", ["EUR", "USD"]),
        ('["chf"]', ["CHF"]),
        ("", ["EUR"]),
    ],
)
def test_supported_currencies_env_parsing(monkeypatch, env_value, expected):
    if env_value is None:
        monkeypatch.delenv("SUPPORTED_CURRENCIES", raising=False)
    else:
        monkeypatch.setenv("SUPPORTED_CURRENCIES", env_value)

    settings = Settings(_env_file=None)

    assert settings.supported_currencies == expected


def test_frontend_base_url_prefers_public_base_url(monkeypatch):
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://app.divebook.test/")
    monkeypatch.setenv("CORS_ORIGINS", "https://other.test")

    assert Settings(_env_file=None).frontend_base_url == "https://app.divebook.test"


def test_frontend_base_url_falls_back_to_first_origin(monkeypatch):
    monkeypatch.delenv("PUBLIC_BASE_URL", raising=False)
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test/, https://b.test")

    assert Settings(_env_file=None).frontend_base_url == "https://a.test"


def test_default_commission_rate_from_env(monkeypatch):
    monkeypatch.setenv("DEFAULT_COMMISSION_RATE", "12.5")

    assert Settings(_env_file=None).default_commission_rate == Decimal("12.5")


@pytest.mark.parametrize("raw", ["-1", "100.5"])
def test_default_commission_rate_bounds(monkeypatch, raw):
    monkeypatch.setenv("DEFAULT_COMMISSION_RATE", raw)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_slot_hours_bounds(monkeypatch):
    monkeypatch.setenv("SLOT_END_HOUR", "24")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
