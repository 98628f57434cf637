"""Google Cloud KMS provider.

Key identifiers are crypto key resource names
(``projects/P/locations/L/keyRings/R/cryptoKeys/K``). The key version that
encrypted a data key is embedded in its envelope, and decryption targets the
crypto key rebuilt from that envelope, so keys rotated on the Cloud KMS side
keep decrypting.
"""
import logging
from collections.abc import Mapping
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import kms

from ..envelope import ProviderTag, encode, decode
from ..exceptions import ProviderError
from .base import RemoteKMSProvider, canonical_context

logger = logging.getLogger("navigator.kms")


class GCPKMSProvider(RemoteKMSProvider):
    """Google Cloud Key Management Service backend."""

    tag = ProviderTag.GCP

    def _create_client(self) -> Any:
        if self.config.gcp_endpoint:
            return kms.KeyManagementServiceClient(
                client_options={"api_endpoint": self.config.gcp_endpoint}
            )
        return kms.KeyManagementServiceClient()

    def wrap(self, key_id: str, plaintext: bytes, context: Mapping[str, str]) -> str:
        try:
            response = self.client.encrypt(
                request={
                    "name": key_id,
                    "plaintext": plaintext,
                    "additional_authenticated_data": canonical_context(context),
                }
            )
        except (GoogleAPIError, GoogleAuthError) as err:
            raise ProviderError(f"Cloud KMS encrypt failed for {key_id}: {err}") from err
        return encode(self.tag, (response.name, response.ciphertext))

    def unwrap(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        _, (key_name, ciphertext) = decode(envelope, expected=self.tag)
        if key_name != key_id:
            logger.debug("Decrypting with %s (configured key: %s)", key_name, key_id)
        try:
            response = self.client.decrypt(
                request={
                    "name": key_name,
                    "ciphertext": ciphertext,
                    "additional_authenticated_data": canonical_context(context),
                }
            )
        except (GoogleAPIError, GoogleAuthError) as err:
            raise ProviderError(f"Cloud KMS decrypt failed for {key_name}: {err}") from err
        return response.plaintext
