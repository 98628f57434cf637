"""
Key Rotation — replace a slot's data key and re-encrypt its attributes.

Steps:
1. Resolve the current key and read every attribute bound to the slot.
2. Forget the cached key and clear the envelope column.
3. Assign each attribute its plaintext again, which encrypts it under a newly
   generated key.
4. Save the record in one write.

Everything before the save happens in memory, so a failure leaves the old
envelope intact in storage. A failed save leaves the instance re-encrypted
but unsaved; discard it (reload) and rotate again rather than retrying the
save alone.

Security Note:
    Plaintext attribute values exist in memory only during the rotation.
    Never log them.
"""
import logging
from typing import Any

from .exceptions import PersistenceError
from . import resolver

logger = logging.getLogger("navigator.kms")


def rotate_key(record: Any, slot_name: str) -> str:
    """Rotate the data key of ``slot_name`` on ``record``.

    Args:
        record: A KMSEncrypted record with a ``save()`` method.
        slot_name: Slot to rotate.

    Returns:
        The new envelope.

    Raises:
        NotFoundError: If the slot is not registered.
        PersistenceError: If saving the rotated record fails.
    """
    cls = type(record)
    slot = cls.kms_registry().lookup(slot_name)
    attributes = [
        attr for attr, key in cls.encrypted_attributes().items()
        if key == slot_name
    ]
    old_envelope = getattr(record, slot.envelope_column, None)

    logger.info(
        "Rotating key slot %s on %s (%d attribute(s))",
        slot_name, cls.__name__, len(attributes),
    )

    # decrypt
    resolver.resolve(record, slot)
    plaintext_attributes = {attr: getattr(record, attr) for attr in attributes}

    # reset key
    resolver.forget(record, slot_name)
    setattr(record, slot.envelope_column, None)

    # encrypt again
    for attr, value in plaintext_attributes.items():
        setattr(record, attr, value)
    # a slot without bound attributes still gets a new key
    resolver.resolve(record, slot)

    try:
        record.save()
    except PersistenceError:
        raise
    except Exception as err:
        raise PersistenceError(
            f"Saving rotated key slot {slot_name!r} failed: {err}"
        ) from err

    new_envelope = getattr(record, slot.envelope_column)
    logger.info(
        "Rotated key slot %s on %s (envelope changed: %s)",
        slot_name, cls.__name__, new_envelope != old_envelope,
    )
    return new_envelope
