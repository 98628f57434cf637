"""Base KMS provider interface.

All provider variants expose the same two operations, ``generate_data_key``
and ``decrypt``. Both are bracketed by an observed event and return a 32-byte
plaintext data key.
"""
import secrets
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional

import orjson

from ..config import KMSConfig
from ..envelope import ProviderTag
from ..events import observe, GENERATE_DATA_KEY, DECRYPT_DATA_KEY

logger = logging.getLogger("navigator.kms")

KEY_LENGTH = 32  # AES-256


def canonical_context(context: Mapping[str, str]) -> bytes:
    """Serialize an encryption context as canonical (sorted-key) JSON."""
    return orjson.dumps(dict(context), option=orjson.OPT_SORT_KEYS)


def new_data_key() -> bytes:
    """Generate a fresh random 256-bit data key."""
    return secrets.token_bytes(KEY_LENGTH)


class KMSProvider(ABC):
    """Common interface over KMS backends.

    Subclasses implement ``_generate`` and ``_decrypt``; the public methods
    add event instrumentation around them.
    """

    tag: ProviderTag

    def __init__(self, config: Optional[KMSConfig] = None, client: Any = None):
        self.config = config or KMSConfig.from_env()
        self._client = client

    def __repr__(self) -> str:
        return f"<{type(self).__name__} tag={self.tag.value}>"

    def generate_data_key(
        self,
        key_id: str,
        context: Mapping[str, str],
    ) -> tuple[bytes, str]:
        """Create a new data key wrapped by ``key_id``.

        Args:
            key_id: KMS key identifier.
            context: Encryption context bound as authenticated data.

        Returns:
            Tuple of (plaintext_key, envelope).

        Raises:
            ProviderError: If the remote call fails.
        """
        with observe(GENERATE_DATA_KEY, key_id, context):
            return self._generate(key_id, context)

    def decrypt(
        self,
        key_id: str,
        envelope: str,
        context: Mapping[str, str],
    ) -> bytes:
        """Unwrap a persisted envelope.

        Args:
            key_id: KMS key identifier configured for the slot.
            envelope: Persisted envelope string.
            context: Encryption context used when the key was generated.

        Returns:
            Plaintext data key.

        Raises:
            MalformedEnvelopeError: If the envelope is not in this provider's format.
            ProviderError: On remote failure or context/ciphertext mismatch.
        """
        with observe(DECRYPT_DATA_KEY, key_id, context):
            return self._decrypt(key_id, envelope, context)

    @abstractmethod
    def _generate(self, key_id: str, context: Mapping[str, str]) -> tuple[bytes, str]:
        pass

    @abstractmethod
    def _decrypt(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        pass


class RemoteKMSProvider(KMSProvider):
    """Provider that wraps locally generated keys with a remote KMS key."""

    @property
    def client(self) -> Any:
        """Backend client, created on first use."""
        if self._client is None:
            self._client = self._create_client()
            logger.debug("Created %s client", self.tag.value)
        return self._client

    @abstractmethod
    def _create_client(self) -> Any:
        pass

    @abstractmethod
    def wrap(self, key_id: str, plaintext: bytes, context: Mapping[str, str]) -> str:
        """Encrypt ``plaintext`` remotely and return the envelope."""

    @abstractmethod
    def unwrap(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        """Decrypt an envelope remotely and return the plaintext key."""

    def _generate(self, key_id: str, context: Mapping[str, str]) -> tuple[bytes, str]:
        plaintext = new_data_key()
        return plaintext, self.wrap(key_id, plaintext, context)

    def _decrypt(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        return self.unwrap(key_id, envelope, context)
