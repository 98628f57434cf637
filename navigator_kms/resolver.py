"""
Key Cache & Resolver — lazy plaintext data keys per record instance.

Each instance keeps a private cache of ``slot_name -> (envelope, plaintext)``.
An entry is served only while the envelope column still holds the envelope it
was derived from.

Precondition:
    A record instance must not be used from several threads at once. The
    cache has no locking.

Known limitation:
    Two separately loaded copies of the same record may both find an empty
    envelope column and generate different keys; the last save wins and the
    other key is lost. Persistence layers with optimistic locking avoid this.

Security Note:
    Plaintext keys live only in process memory and are never logged.
"""
import logging
from typing import Any

from .exceptions import MissingKeyIdentifierError
from .providers import get_provider
from .registry import KeySlot, KeySlotRegistry

logger = logging.getLogger("navigator.kms")

_CACHE_ATTR = "_kms_key_cache"


def _cache(record: Any) -> dict[str, tuple[str, bytes]]:
    cache = record.__dict__.get(_CACHE_ATTR)
    if cache is None:
        cache = {}
        record.__dict__[_CACHE_ATTR] = cache
    return cache


def is_cached(record: Any, slot_name: str) -> bool:
    """True if a plaintext key is cached for the slot."""
    return slot_name in _cache(record)


def resolve(record: Any, slot: KeySlot) -> bytes:
    """Return the plaintext data key of ``slot`` on ``record``.

    Generates a key when the envelope column is empty (the new envelope is
    written to the column; saving is the caller's job), otherwise unwraps the
    persisted envelope.

    Raises:
        MissingKeyIdentifierError: If the slot has no key identifier.
        ProviderError: If the KMS call fails.
        MalformedEnvelopeError: If the persisted envelope cannot be parsed.
    """
    if not slot.key_identifier:
        raise MissingKeyIdentifierError(
            f"Missing key id for slot {slot.slot_name!r}"
        )
    cache = _cache(record)
    envelope = getattr(record, slot.envelope_column, None)
    cached = cache.get(slot.slot_name)
    if cached is not None:
        if envelope == cached[0]:
            return cached[1]
        # envelope column changed under the cache
        del cache[slot.slot_name]

    provider = get_provider(slot.key_identifier)
    context = slot.context_for(record)
    if not envelope:
        plaintext, envelope = provider.generate_data_key(slot.key_identifier, context)
        setattr(record, slot.envelope_column, envelope)
        logger.debug("Generated data key for slot %s", slot.slot_name)
    else:
        plaintext = provider.decrypt(slot.key_identifier, envelope, context)
        logger.debug("Decrypted data key for slot %s", slot.slot_name)
    cache[slot.slot_name] = (envelope, plaintext)
    return plaintext


def forget(record: Any, slot_name: str) -> None:
    """Drop the cached key of one slot."""
    _cache(record).pop(slot_name, None)


def invalidate(record: Any, registry: KeySlotRegistry) -> None:
    """Drop cached keys of every registered slot (record reload hook)."""
    cache = _cache(record)
    for slot_name in registry:
        cache.pop(slot_name, None)
