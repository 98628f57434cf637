"""AWS KMS provider.

Wraps locally generated data keys with a KMS key (ARN, key id or alias).
The encryption context is passed as the KMS ``EncryptionContext``, which
KMS binds as authenticated data.

Environment variables:
    AWS_REGION: AWS region (e.g., us-east-1)
    KMS_ENDPOINT: Custom endpoint (e.g., localstack)
    Credentials are resolved by boto3's default chain.
"""
import logging
from collections.abc import Mapping
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..envelope import ProviderTag, encode, decode
from ..exceptions import ProviderError
from .base import RemoteKMSProvider

logger = logging.getLogger("navigator.kms")


class AWSKMSProvider(RemoteKMSProvider):
    """AWS Key Management Service backend."""

    tag = ProviderTag.AWS

    def _create_client(self) -> Any:
        client_kwargs: dict[str, Any] = {"service_name": "kms"}
        if self.config.aws_region:
            client_kwargs["region_name"] = self.config.aws_region
        if self.config.aws_endpoint_url:
            client_kwargs["endpoint_url"] = self.config.aws_endpoint_url
        return boto3.client(**client_kwargs)

    def wrap(self, key_id: str, plaintext: bytes, context: Mapping[str, str]) -> str:
        try:
            response = self.client.encrypt(
                KeyId=key_id,
                Plaintext=plaintext,
                EncryptionContext=dict(context),
            )
        except (ClientError, BotoCoreError) as err:
            raise ProviderError(f"AWS KMS encrypt failed for {key_id}: {err}") from err
        return encode(self.tag, (response["CiphertextBlob"],))

    def unwrap(self, key_id: str, envelope: str, context: Mapping[str, str]) -> bytes:
        _, (ciphertext,) = decode(envelope, expected=self.tag)
        try:
            response = self.client.decrypt(
                CiphertextBlob=ciphertext,
                EncryptionContext=dict(context),
            )
        except ClientError as err:
            error_code = err.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "InvalidCiphertextException":
                raise ProviderError(
                    "Invalid ciphertext or wrong encryption context"
                ) from err
            raise ProviderError(f"AWS KMS decrypt failed for {key_id}: {err}") from err
        except BotoCoreError as err:
            raise ProviderError(f"AWS KMS decrypt failed for {key_id}: {err}") from err
        return response["Plaintext"]
