"""Insecure test provider.

Never contacts a network. Every data key is 32 zero bytes; the envelope is a
random token. Only for tests and local development.
"""
import secrets
from collections.abc import Mapping

from ..envelope import ProviderTag, encode, decode
from .base import KMSProvider, KEY_LENGTH

INSECURE_PLAINTEXT = b"\x00" * KEY_LENGTH


class InsecureTestProvider(KMSProvider):
    """Deterministic all-zero data keys."""

    tag = ProviderTag.INSECURE

    def _generate(self, key_id: str, context: Mapping[str, str]) -> tuple[bytes, str]:
        suffix = secrets.randbelow(10 ** 12)
        return INSECURE_PLAINTEXT, encode(self.tag, (suffix,))

    def _decrypt(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        decode(envelope, expected=self.tag)
        return INSECURE_PLAINTEXT
