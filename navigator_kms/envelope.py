"""
Envelope Codec — serialization of wrapped data keys per provider.

Formats (persisted, must stay stable across versions):
- Insecure test: ``insecure-data-key-<suffix>`` (generated with a decimal suffix)
- Google Cloud KMS: ``$gc$<b64 short key-version path>$<b64 ciphertext>``
- Vault transit: the transit ciphertext verbatim (``vault:v<N>:...``)
- AWS KMS: standard base64 of the ciphertext blob

Security Note:
    Envelopes never contain plaintext key material.
"""
import base64
import binascii
from enum import Enum
from typing import Any

from .exceptions import MalformedEnvelopeError

INSECURE_KEY_ID = "insecure-test-key"
INSECURE_PREFIX = "insecure-data-key-"
GCP_TAG = "$gc$"
VAULT_PREFIX = "vault:"

# Labels of a Google Cloud KMS resource name, in path order.
_GCP_LABELS = ("projects", "locations", "keyRings", "cryptoKeys")


class ProviderTag(str, Enum):
    """Provider variants, each with its own envelope format."""
    INSECURE = "insecure"
    GCP = "gcp"
    VAULT = "vault"
    AWS = "aws"


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedEnvelopeError(f"Invalid base64 in envelope: {err}") from err


def shorten_key_path(key_name: str) -> str:
    """Keep only the values of a Cloud KMS resource name.

    ``projects/P/locations/L/keyRings/R/cryptoKeys/K/cryptoKeyVersions/V``
    becomes ``P/L/R/K/V``.
    """
    return "/".join(key_name.split("/")[1::2])


def expand_key_path(short_path: str) -> str:
    """Rebuild the crypto key name from a shortened path.

    Any version segment is dropped, so decryption always targets the base key.
    """
    parts = short_path.split("/")
    if len(parts) < len(_GCP_LABELS) or not all(parts[:len(_GCP_LABELS)]):
        raise MalformedEnvelopeError(
            f"Key path has {len(parts)} segment(s), "
            f"expected at least {len(_GCP_LABELS)}"
        )
    return "/".join(
        f"{label}/{value}" for label, value in zip(_GCP_LABELS, parts)
    )


def encode(tag: ProviderTag, parts: tuple[Any, ...]) -> str:
    """Serialize provider output into an envelope string.

    Args:
        tag: Provider variant.
        parts: ``(suffix,)`` for insecure, ``(key_version_name, ciphertext)``
            for GCP, ``(transit_ciphertext,)`` for Vault and
            ``(ciphertext_blob,)`` for AWS.

    Returns:
        Envelope string ready to persist.
    """
    if tag is ProviderTag.INSECURE:
        (suffix,) = parts
        return f"{INSECURE_PREFIX}{suffix}"
    if tag is ProviderTag.GCP:
        key_version_name, ciphertext = parts
        return (
            f"{GCP_TAG}{_b64encode(shorten_key_path(key_version_name).encode('utf-8'))}"
            f"${_b64encode(ciphertext)}"
        )
    if tag is ProviderTag.VAULT:
        (ciphertext,) = parts
        if not ciphertext.startswith(VAULT_PREFIX):
            raise MalformedEnvelopeError(
                "Vault ciphertext must start with 'vault:'"
            )
        return ciphertext
    (ciphertext,) = parts
    return _b64encode(ciphertext)


def detect(envelope: str) -> ProviderTag:
    """Return the provider tag an envelope string belongs to."""
    if envelope.startswith(INSECURE_PREFIX):
        return ProviderTag.INSECURE
    if envelope.startswith(GCP_TAG):
        return ProviderTag.GCP
    if envelope.startswith(VAULT_PREFIX):
        return ProviderTag.VAULT
    return ProviderTag.AWS


def decode(envelope: str, expected: ProviderTag | None = None) -> tuple[ProviderTag, tuple[Any, ...]]:
    """Parse an envelope string.

    Args:
        envelope: Persisted envelope.
        expected: Provider that must own the envelope, if known.

    Returns:
        Tuple of (tag, parts). GCP parts are ``(crypto_key_name, ciphertext)``.

    Raises:
        MalformedEnvelopeError: If the envelope is empty, fails to parse, or
            belongs to a provider other than ``expected``.
    """
    if not isinstance(envelope, str) or not envelope:
        raise MalformedEnvelopeError("Envelope must be a non-empty string")
    tag = detect(envelope)
    if expected is not None and tag is not expected:
        raise MalformedEnvelopeError(
            f"Envelope looks like {tag.value}, expected {expected.value}"
        )
    if tag is ProviderTag.INSECURE:
        return tag, (envelope[len(INSECURE_PREFIX):],)
    if tag is ProviderTag.GCP:
        fields = envelope[len(GCP_TAG):].split("$")
        if len(fields) != 2:
            raise MalformedEnvelopeError("GCP envelope must have path and ciphertext")
        try:
            short_path = _b64decode(fields[0]).decode("utf-8")
        except UnicodeDecodeError as err:
            raise MalformedEnvelopeError("GCP key path is not valid UTF-8") from err
        return tag, (expand_key_path(short_path), _b64decode(fields[1]))
    if tag is ProviderTag.VAULT:
        return tag, (envelope,)
    return tag, (_b64decode(envelope),)
