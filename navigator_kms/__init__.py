"""Navigator KMS — envelope encryption keys for persisted records.

Each record owns one or more data keys. A data key is wrapped by an external
KMS (Google Cloud KMS, AWS KMS, HashiCorp Vault transit, or an insecure test
provider) and only the wrapped envelope is persisted.

Security Note (Threat Model):
    Plaintext data keys are cached in process memory for the lifetime of a
    record instance. A memory dump of the application process could expose
    them. This is an accepted limitation.
"""
from .version import __version__
from .attributes import EncryptedAttribute
from .config import KMSConfig
from .envelope import ProviderTag
from .events import subscribe, unsubscribe
from .exceptions import (
    KMSEncryptedError,
    ConfigurationError,
    NotFoundError,
    MissingKeyIdentifierError,
    ProviderError,
    MalformedEnvelopeError,
    PersistenceError,
)
from .model import KMSEncrypted, key_accessor
from .providers import get_provider, register_provider, select_provider_tag
from .registry import KeySlot, KeySlotRegistry, has_kms_key
from .rotation import rotate_key

__all__ = [
    "__version__",
    "EncryptedAttribute",
    "KMSConfig",
    "KMSEncrypted",
    "KeySlot",
    "KeySlotRegistry",
    "ProviderTag",
    "has_kms_key",
    "key_accessor",
    "rotate_key",
    "get_provider",
    "register_provider",
    "select_provider_tag",
    "subscribe",
    "unsubscribe",
    "KMSEncryptedError",
    "ConfigurationError",
    "NotFoundError",
    "MissingKeyIdentifierError",
    "ProviderError",
    "MalformedEnvelopeError",
    "PersistenceError",
]
