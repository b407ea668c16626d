import uuid

import pytest
from saltmaster.core.errors import ConfigurationError, ProviderError
from saltmaster.providers import create_provider, list_providers
from saltmaster.providers.random_uuid import RandomProvider


@pytest.mark.asyncio
async def test_generate_token_is_uuid():
    token = await RandomProvider().generate_token()

    assert str(uuid.UUID(token)) == token


@pytest.mark.asyncio
async def test_generate_token_uses_generator():
    fixed = uuid.UUID("12345678-1234-5678-1234-567812345678")
    provider = RandomProvider(generator=lambda: fixed)

    assert await provider.generate_token() == str(fixed)


@pytest.mark.asyncio
async def test_entropy_failure_is_provider_error():
    def broken():
        raise OSError("no entropy")

    with pytest.raises(ProviderError, match="random source unavailable"):
        await RandomProvider(generator=broken).generate_token()


def test_builtin_providers_registered():
    names = {spec.name for spec in list_providers()}

    assert {"equinix-metal", "ns1", "random"} <= names
    assert isinstance(create_provider("random"), RandomProvider)


def test_providers_declare_capabilities():
    capabilities = {spec.name: spec.capabilities for spec in list_providers()}

    assert capabilities["equinix-metal"] == ("compute",)
    assert capabilities["ns1"] == ("dns",)
    assert capabilities["random"] == ("token",)


def test_unknown_provider_is_configuration_error():
    with pytest.raises(ConfigurationError, match="not registered"):
        create_provider("aws")
