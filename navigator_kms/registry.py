"""
Key Slot Registry — per-record-type table of KMS key slots.

A registry is filled once while the record type is set up and frozen
afterwards; all instances of the type share it read-only.
"""
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .config import default_key_id
from .exceptions import ConfigurationError, NotFoundError

logger = logging.getLogger("navigator.kms")

DEFAULT_SLOT = "kms_key"

ContextResolver = Callable[[Any], Mapping[str, str]]


def slot_method_name(name: Optional[str] = None, prefix: Optional[str] = None) -> str:
    """Slot name for a declaration: ``kms_key``, ``kms_key_<name>`` or ``<prefix>_kms_key``."""
    if name and prefix:
        raise ConfigurationError("A key slot takes either a name or a prefix, not both")
    if name:
        return f"{DEFAULT_SLOT}_{name}"
    if prefix:
        return f"{prefix}_{DEFAULT_SLOT}"
    return DEFAULT_SLOT


@dataclass(frozen=True)
class KeySlot:
    """One logical data key on a record type."""

    slot_name: str
    key_identifier: Optional[str] = None
    context_resolver: Optional[ContextResolver] = None

    @property
    def envelope_column(self) -> str:
        """Attribute holding the persisted envelope."""
        return f"encrypted_{self.slot_name}"

    def context_for(self, record: Any) -> dict[str, str]:
        """Encryption context for ``record``; empty without a resolver."""
        if self.context_resolver is None:
            return {}
        return {str(k): str(v) for k, v in self.context_resolver(record).items()}


def has_kms_key(
    key_id: Optional[str] = None,
    *,
    name: Optional[str] = None,
    prefix: Optional[str] = None,
    context: Optional[ContextResolver] = None,
) -> KeySlot:
    """Declare a key slot.

    Args:
        key_id: KMS key identifier. Falls back to the KMS_KEY_ID environment
            variable when omitted.
        name: Slot name suffix (``kms_key_<name>``).
        prefix: Slot name prefix (``<prefix>_kms_key``).
        context: Callable returning the encryption context for a record.

    Returns:
        KeySlot to list in a record type's ``kms_keys``.
    """
    return KeySlot(
        slot_name=slot_method_name(name, prefix),
        key_identifier=key_id or default_key_id(),
        context_resolver=context,
    )


class KeySlotRegistry(Mapping[str, KeySlot]):
    """Slot name to KeySlot mapping, read-only once frozen."""

    def __init__(self, owner: str = ""):
        self._owner = owner
        self._slots: dict[str, KeySlot] = {}
        self._frozen = False

    def __repr__(self) -> str:
        return (
            f"<KeySlotRegistry owner={self._owner!r} "
            f"slots={list(self._slots)} frozen={self._frozen}>"
        )

    def __getitem__(self, slot_name: str) -> KeySlot:
        return self._slots[slot_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        slot_name: str,
        key_identifier: Optional[str],
        context_resolver: Optional[ContextResolver] = None,
    ) -> KeySlot:
        """Add a slot.

        Raises:
            ConfigurationError: If the slot exists or the registry is frozen.
        """
        if self._frozen:
            raise ConfigurationError(
                f"Key slots of {self._owner or 'this type'} are already frozen"
            )
        if slot_name in self._slots:
            raise ConfigurationError(
                f"Key slot {slot_name!r} already registered for {self._owner or 'this type'}"
            )
        slot = KeySlot(slot_name, key_identifier, context_resolver)
        self._slots[slot_name] = slot
        logger.debug(
            "Registered key slot %s on %s (key: %s)",
            slot_name, self._owner, key_identifier,
        )
        return slot

    def add(self, slot: KeySlot) -> KeySlot:
        """Register a declared KeySlot."""
        return self.register(slot.slot_name, slot.key_identifier, slot.context_resolver)

    def lookup(self, slot_name: str) -> KeySlot:
        """Return a registered slot.

        Raises:
            NotFoundError: If ``slot_name`` is not registered.
        """
        try:
            return self._slots[slot_name]
        except KeyError:
            raise NotFoundError(
                f"Key slot {slot_name!r} is not registered for {self._owner or 'this type'}"
            ) from None

    def freeze(self) -> "KeySlotRegistry":
        self._frozen = True
        return self
