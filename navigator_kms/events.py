"""
KMS Events — instrumentation side channel around provider calls.

Listeners receive ``(name, payload)`` after each observed call. The payload
carries the key identifier, the encryption context and the duration in
milliseconds. Listener failures are logged and never change the outcome of
the observed call.
"""
import time
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

logger = logging.getLogger("navigator.kms")

GENERATE_DATA_KEY = "generate_data_key"
DECRYPT_DATA_KEY = "decrypt_data_key"

Listener = Callable[[str, dict[str, Any]], None]

_listeners: list[Listener] = []


def subscribe(listener: Listener) -> Listener:
    """Register an event listener. Returns it, so it can be used as decorator."""
    _listeners.append(listener)
    return listener


def unsubscribe(listener: Listener) -> None:
    """Remove a previously registered listener. No-op if absent."""
    try:
        _listeners.remove(listener)
    except ValueError:
        pass


def _notify(name: str, payload: dict[str, Any]) -> None:
    for listener in list(_listeners):
        try:
            listener(name, payload)
        except Exception:
            logger.exception("KMS event listener failed for %s", name)


@contextmanager
def observe(name: str, key_id: str, context: dict[str, str]) -> Iterator[dict[str, Any]]:
    """Bracket a provider call with an observable event.

    The event is emitted whether the call succeeds or fails; the ``error``
    entry holds the exception class name on failure.
    """
    payload: dict[str, Any] = {"key_id": key_id, "context": dict(context)}
    started = time.perf_counter()
    try:
        yield payload
    except Exception as err:
        payload["error"] = type(err).__name__
        raise
    finally:
        payload["duration"] = (time.perf_counter() - started) * 1000.0
        logger.debug(
            "KMS %s (%.1fms) key=%s context=%s",
            name, payload["duration"], key_id, payload["context"],
        )
        _notify(name, payload)
