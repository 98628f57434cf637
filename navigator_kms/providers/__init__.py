"""KMS provider adapters and the key identifier dispatch table.

Key identifier conventions (case-sensitive, stable public contract):

    insecure-test-key       -> Insecure-Test (no network, all-zero keys)
    projects/...            -> Google Cloud KMS
    vault/<transit key>     -> HashiCorp Vault transit
    anything else           -> AWS KMS (key ARN, id or alias)
"""
import logging
from functools import lru_cache

from ..envelope import ProviderTag, INSECURE_KEY_ID
from .base import KMSProvider, RemoteKMSProvider, canonical_context, new_data_key
from .insecure import InsecureTestProvider, INSECURE_PLAINTEXT
from .aws import AWSKMSProvider
from .gcp import GCPKMSProvider
from .vault import VaultTransitProvider

logger = logging.getLogger("navigator.kms")

# Ordered prefix table; first match wins, AWS is the fallback.
PREFIXES: tuple[tuple[str, ProviderTag], ...] = (
    ("projects/", ProviderTag.GCP),
    ("vault/", ProviderTag.VAULT),
)

_providers: dict[ProviderTag, type[KMSProvider]] = {
    ProviderTag.INSECURE: InsecureTestProvider,
    ProviderTag.GCP: GCPKMSProvider,
    ProviderTag.VAULT: VaultTransitProvider,
    ProviderTag.AWS: AWSKMSProvider,
}


def select_provider_tag(key_id: str) -> ProviderTag:
    """Map a key identifier to its provider variant."""
    if key_id == INSECURE_KEY_ID:
        return ProviderTag.INSECURE
    for prefix, tag in PREFIXES:
        if key_id.startswith(prefix):
            return tag
    return ProviderTag.AWS


def register_provider(tag: ProviderTag, provider_class: type[KMSProvider]) -> None:
    """Replace the provider class used for a variant.

    Clears cached instances so the new class takes effect immediately.
    """
    _providers[tag] = provider_class
    _provider_for_tag.cache_clear()
    logger.info("Registered KMS provider %s for %s", provider_class.__name__, tag.value)


@lru_cache(maxsize=None)
def _provider_for_tag(tag: ProviderTag) -> KMSProvider:
    provider = _providers[tag]()
    logger.debug("Created KMS provider: %s", tag.value)
    return provider


def get_provider(key_id: str) -> KMSProvider:
    """Return the (cached) provider instance serving ``key_id``."""
    return _provider_for_tag(select_provider_tag(key_id))


def reset_providers() -> None:
    """Drop cached provider instances (reconfiguration, tests)."""
    _provider_for_tag.cache_clear()


__all__ = [
    "KMSProvider",
    "RemoteKMSProvider",
    "InsecureTestProvider",
    "AWSKMSProvider",
    "GCPKMSProvider",
    "VaultTransitProvider",
    "INSECURE_PLAINTEXT",
    "PREFIXES",
    "canonical_context",
    "new_data_key",
    "select_provider_tag",
    "register_provider",
    "get_provider",
    "reset_providers",
]
