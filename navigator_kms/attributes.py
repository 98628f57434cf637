"""EncryptedAttribute — reference attribute-encryption collaborator.

Declares a record attribute encrypted under a key slot::

    class User(KMSEncrypted):
        kms_keys = (has_kms_key("insecure-test-key"),)
        email = EncryptedAttribute()

Reading ``user.email`` decrypts ``user.encrypted_email`` with the slot key;
assigning encrypts into it. ``None`` is stored as ``None``.
"""
from typing import Any, Optional

from .crypto import encrypt_value, decrypt_value
from .registry import DEFAULT_SLOT


class EncryptedAttribute:
    """Descriptor binding an attribute to a key slot."""

    def __init__(self, key: str = DEFAULT_SLOT, column: Optional[str] = None):
        self.key = key
        self.column = column
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        if self.column is None:
            self.column = f"encrypted_{name}"

    def __repr__(self) -> str:
        return f"<EncryptedAttribute {self.name} key={self.key}>"

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        ciphertext = getattr(instance, self.column, None)
        if ciphertext is None:
            return None
        return decrypt_value(ciphertext, instance.resolve_key(self.key), self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        if value is None:
            setattr(instance, self.column, None)
            return
        setattr(
            instance,
            self.column,
            encrypt_value(value, instance.resolve_key(self.key), self.name),
        )
