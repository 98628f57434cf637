"""
KMSEncrypted — key slot support for record types.

A record type lists its slots in ``kms_keys`` and gets a frozen registry at
class creation::

    class Patient(Record, KMSEncrypted):
        kms_keys = (
            has_kms_key("projects/p/locations/global/keyRings/r/cryptoKeys/k"),
            has_kms_key("vault/patients", name="phone",
                        context=lambda r: {"Model": "Patient", "Id": r.id}),
        )
        email = EncryptedAttribute()
        phone = EncryptedAttribute(key="kms_key_phone")
        kms_key = key_accessor("kms_key")

Each slot needs an ``encrypted_<slot_name>`` attribute holding its envelope.

Record framework contract:
    * ``save()`` persists every column in one write (used by rotation).
    * Reloading a record from storage must call ``invalidate_keys()``.
"""
from collections.abc import Sequence
from typing import Any

from .attributes import EncryptedAttribute
from .exceptions import ConfigurationError
from .registry import DEFAULT_SLOT, KeySlot, KeySlotRegistry
from . import resolver
from .rotation import rotate_key


def key_accessor(slot_name: str = DEFAULT_SLOT) -> property:
    """Read-only property returning the plaintext key of ``slot_name``."""
    def _get(self: "KMSEncrypted") -> bytes:
        return self.resolve_key(slot_name)
    return property(_get, doc=f"Plaintext data key of slot {slot_name}.")


class KMSEncrypted:
    """Mixin adding key resolution, rotation and invalidation to a record.

    Instances are not thread-safe; do not share one instance across threads.
    """

    kms_keys: Sequence[KeySlot] = ()

    _kms_registry: KeySlotRegistry = KeySlotRegistry("KMSEncrypted").freeze()
    _encrypted_attributes: dict[str, str] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        registry = KeySlotRegistry(owner=cls.__name__)
        for slot in cls.kms_keys:
            registry.add(slot)
        cls._kms_registry = registry.freeze()

        bindings: dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, EncryptedAttribute):
                    bindings[name] = value.key
        for name, slot_name in bindings.items():
            if slot_name not in registry:
                raise ConfigurationError(
                    f"{cls.__name__}.{name} uses unknown key slot {slot_name!r}"
                )
        cls._encrypted_attributes = bindings

    @classmethod
    def kms_registry(cls) -> KeySlotRegistry:
        return cls._kms_registry

    @classmethod
    def encrypted_attributes(cls) -> dict[str, str]:
        """Attribute name to slot name bindings."""
        return dict(cls._encrypted_attributes)

    def resolve_key(self, slot_name: str = DEFAULT_SLOT) -> bytes:
        """Plaintext data key of ``slot_name``, generated or decrypted on first use."""
        return resolver.resolve(self, self.kms_registry().lookup(slot_name))

    def rotate_key(self, slot_name: str = DEFAULT_SLOT) -> str:
        """Rotate ``slot_name`` and save the record. Returns the new envelope."""
        return rotate_key(self, slot_name)

    def invalidate_keys(self) -> None:
        """Forget all cached plaintext keys. Must be called on reload."""
        resolver.invalidate(self, self.kms_registry())
