"""HashiCorp Vault transit provider.

Key identifiers have the form ``vault/<transit key name>``. The transit
ciphertext (``vault:v<N>:...``) is persisted verbatim. A non-empty encryption
context is sent as the transit ``context`` parameter, which requires a
transit key created with ``derived=true``.

Environment variables:
    VAULT_ADDR: Vault address
    VAULT_TOKEN: Vault token
    VAULT_TRANSIT_MOUNT: Transit mount point (default "transit")
"""
import base64
import logging
from collections.abc import Mapping
from typing import Any, Optional

import hvac
from hvac.exceptions import VaultError
from requests.exceptions import RequestException

from ..envelope import ProviderTag, encode, decode
from ..exceptions import ProviderError
from .base import RemoteKMSProvider, canonical_context

logger = logging.getLogger("navigator.kms")

KEY_PREFIX = "vault/"


def transit_key_name(key_id: str) -> str:
    """Return the transit key path of a ``vault/...`` key identifier."""
    return key_id[len(KEY_PREFIX):] if key_id.startswith(KEY_PREFIX) else key_id


def transit_context(context: Mapping[str, str]) -> Optional[str]:
    """Base64 canonical JSON context, or None when the context is empty."""
    if not context:
        return None
    return base64.b64encode(canonical_context(context)).decode("ascii")


class VaultTransitProvider(RemoteKMSProvider):
    """HashiCorp Vault transit secrets engine backend."""

    tag = ProviderTag.VAULT

    def _create_client(self) -> Any:
        return hvac.Client(url=self.config.vault_url, token=self.config.vault_token)

    def wrap(self, key_id: str, plaintext: bytes, context: Mapping[str, str]) -> str:
        name = transit_key_name(key_id)
        try:
            response = self.client.secrets.transit.encrypt_data(
                name=name,
                plaintext=base64.b64encode(plaintext).decode("ascii"),
                context=transit_context(context),
                mount_point=self.config.vault_mount_point,
            )
        except (VaultError, RequestException) as err:
            raise ProviderError(f"Vault encrypt failed for {name}: {err}") from err
        return encode(self.tag, (response["data"]["ciphertext"],))

    def unwrap(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        _, (ciphertext,) = decode(envelope, expected=self.tag)
        name = transit_key_name(key_id)
        try:
            response = self.client.secrets.transit.decrypt_data(
                name=name,
                ciphertext=ciphertext,
                context=transit_context(context),
                mount_point=self.config.vault_mount_point,
            )
        except (VaultError, RequestException) as err:
            raise ProviderError(f"Vault decrypt failed for {name}: {err}") from err
        return base64.b64decode(response["data"]["plaintext"])
