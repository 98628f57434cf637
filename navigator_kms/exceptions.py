"""Navigator KMS exceptions.

None of these are recovered inside the library: every failure aborts the
current operation and reaches the caller unchanged.
"""


class KMSEncryptedError(Exception):
    """Base class for all navigator_kms errors."""


class ConfigurationError(KMSEncryptedError):
    """Invalid key slot declaration (duplicate slot, frozen registry)."""


class NotFoundError(KMSEncryptedError):
    """Lookup of a slot that was never registered."""


class MissingKeyIdentifierError(KMSEncryptedError):
    """Slot has no KMS key identifier configured.

    Raised before any provider call is attempted.
    """


class ProviderError(KMSEncryptedError):
    """Remote KMS call failed or rejected the ciphertext/context."""


class MalformedEnvelopeError(KMSEncryptedError):
    """Persisted envelope does not match the format of its provider."""


class PersistenceError(KMSEncryptedError):
    """Atomic write of a rotated record was rejected."""
