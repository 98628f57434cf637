"""Shared fixtures for KMS providers, events and the record store."""
from types import SimpleNamespace

import pytest

from navigator_kms import KMSConfig, ProviderTag, register_provider
from navigator_kms.events import subscribe, unsubscribe
from navigator_kms.providers import (
    AWSKMSProvider,
    GCPKMSProvider,
    VaultTransitProvider,
    reset_providers,
)

from helpers import FakeAWSKMSClient, FakeCloudKMSClient, FakeTransit, Store


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Isolate tests from KMS settings in the host environment."""
    for name in (
        "KMS_KEY_ID", "AWS_REGION", "AWS_DEFAULT_REGION", "KMS_ENDPOINT",
        "GOOGLE_KMS_ENDPOINT", "VAULT_ADDR", "VAULT_TOKEN", "VAULT_TRANSIT_MOUNT",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_providers()
    yield
    reset_providers()


@pytest.fixture
def aws_client():
    return FakeAWSKMSClient()


@pytest.fixture
def gcp_client():
    return FakeCloudKMSClient()


@pytest.fixture
def vault_client():
    return SimpleNamespace(secrets=SimpleNamespace(transit=FakeTransit()))


@pytest.fixture
def aws_provider(aws_client):
    return AWSKMSProvider(config=KMSConfig(), client=aws_client)


@pytest.fixture
def gcp_provider(gcp_client):
    return GCPKMSProvider(config=KMSConfig(), client=gcp_client)


@pytest.fixture
def vault_provider(vault_client):
    return VaultTransitProvider(config=KMSConfig(), client=vault_client)


@pytest.fixture
def registered_aws(aws_client):
    """Route AWS key identifiers to the fake client."""
    class _FakeAWSProvider(AWSKMSProvider):
        def __init__(self):
            super().__init__(config=KMSConfig(), client=aws_client)

    register_provider(ProviderTag.AWS, _FakeAWSProvider)
    yield aws_client
    register_provider(ProviderTag.AWS, AWSKMSProvider)


@pytest.fixture
def events():
    """Collect observed KMS events as (name, payload) tuples."""
    received: list[tuple[str, dict]] = []

    def listener(name, payload):
        received.append((name, payload))

    subscribe(listener)
    yield received
    unsubscribe(listener)


@pytest.fixture
def store():
    return Store()
