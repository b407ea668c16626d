import pytest
from pydantic import ValidationError
from saltmaster.config.settings import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("SALTMASTER_STACK", raising=False)

    settings = Settings(_env_file=None)

    assert settings.stack == "dev"
    assert settings.metal_base_url == "https://api.equinix.com/metal/v1"
    assert settings.http_max_retries == 3


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("SALTMASTER_STACK", "prod")
    monkeypatch.setenv("SALTMASTER_NS1_API_KEY", "ns1-key")
    monkeypatch.setenv("SALTMASTER_HTTP_TIMEOUT", "5")

    settings = Settings(_env_file=None)

    assert settings.stack == "prod"
    assert settings.ns1_api_key == "ns1-key"
    assert settings.http_timeout == 5.0


def test_retries_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, http_max_retries=0)
