"""
Attribute Crypto — encryption of record values under a slot data key.

Each attribute gets its own key:
    HKDF(data_key, "navigator-kms-attr:<attribute>") → AES-GCM

Format (base64 text): [nonce 12B][encrypted_payload + GCM_tag 16B]
The attribute name is bound as associated data, so a ciphertext copied to
another column fails to decrypt.

Security Note:
    Never log plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
import logging
from typing import Any

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger("navigator.kms")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16

_BYTES_WRAPPER_KEY = "__kms_bytes_b64__"


class AttributeDecryptionError(ValueError):
    """Ciphertext is malformed or was not produced with this key."""


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte encryption key using HKDF-SHA256.

    Args:
        seed: Input key material (slot data key).
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


def attribute_key(data_key: bytes, attribute: str) -> bytes:
    return derive_key(data_key, f"navigator-kms-attr:{attribute}")


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Serialize a Python value to bytes for encryption.

    Supports: str, int, float, dict, list, bytes, bool, None.
    bytes values are wrapped as {"__kms_bytes_b64__": "<base64>"} for safe JSON round-trip.
    """
    if isinstance(value, bytes):
        wrapped = {_BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
        return orjson.dumps(wrapped)
    return orjson.dumps(value)


def deserialize_value(data: bytes) -> Any:
    """Deserialize bytes back to a Python value."""
    parsed = orjson.loads(data)
    if isinstance(parsed, dict) and _BYTES_WRAPPER_KEY in parsed and len(parsed) == 1:
        return base64.b64decode(parsed[_BYTES_WRAPPER_KEY])
    return parsed


# ---------------------------------------------------------------------------
# Attribute encryption
# ---------------------------------------------------------------------------

def encrypt_value(value: Any, data_key: bytes, attribute: str) -> str:
    """Encrypt an attribute value.

    Args:
        value: Value to encrypt (see serialize_value).
        data_key: Plaintext slot data key.
        attribute: Attribute name, used for key derivation and as AAD.

    Returns:
        Base64 text of [nonce][ciphertext+tag].
    """
    cipher = AESGCM(attribute_key(data_key, attribute))
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, serialize_value(value), attribute.encode("utf-8"))
    return base64.b64encode(nonce + ct).decode("ascii")


def decrypt_value(ciphertext: str, data_key: bytes, attribute: str) -> Any:
    """Decrypt an attribute value.

    Raises:
        AttributeDecryptionError: If the ciphertext is malformed or the key is wrong.
    """
    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as err:
        raise AttributeDecryptionError(f"{attribute}: invalid base64") from err
    _min = NONCE_SIZE + TAG_SIZE
    if len(raw) < _min:
        raise AttributeDecryptionError(
            f"{attribute}: ciphertext too short: {len(raw)} bytes "
            f"(minimum {_min})"
        )
    cipher = AESGCM(attribute_key(data_key, attribute))
    try:
        plaintext = cipher.decrypt(
            raw[:NONCE_SIZE], raw[NONCE_SIZE:], attribute.encode("utf-8"),
        )
    except InvalidTag as err:
        raise AttributeDecryptionError(
            f"{attribute}: decryption failed (wrong key or tampered data)"
        ) from err
    return deserialize_value(plaintext)
