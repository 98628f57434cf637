"""
KMS Configuration — Provider settings loaded from the environment.

Reads settings from environment variables:
    KMS_KEY_ID = <default key identifier for slots declared without one>
    AWS_REGION / AWS_DEFAULT_REGION = <region for the AWS KMS client>
    KMS_ENDPOINT = <custom AWS KMS endpoint url>
    GOOGLE_KMS_ENDPOINT = <custom Google Cloud KMS api endpoint>
    VAULT_ADDR = <HashiCorp Vault url>
    VAULT_TOKEN = <HashiCorp Vault token>
    VAULT_TRANSIT_MOUNT = <transit secrets engine mount point>

Security Note:
    Never log tokens. Only log key identifiers and provider names.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("navigator.kms")


def default_key_id() -> Optional[str]:
    """Return the fallback key identifier from KMS_KEY_ID, if set."""
    return os.environ.get("KMS_KEY_ID") or None


class KMSConfig(BaseModel):
    """Validated provider configuration."""

    default_key_id: Optional[str] = None
    aws_region: Optional[str] = None
    aws_endpoint_url: Optional[str] = None
    gcp_endpoint: Optional[str] = None
    vault_url: Optional[str] = None
    vault_token: Optional[str] = Field(default=None, repr=False)
    vault_mount_point: str = Field(default="transit")

    @field_validator("vault_mount_point")
    @classmethod
    def validate_mount_point(cls, v: str) -> str:
        """Strip surrounding slashes and reject an empty mount point."""
        v = v.strip("/")
        if not v:
            raise ValueError("vault_mount_point cannot be empty")
        return v

    @field_validator("vault_url", "aws_endpoint_url", "gcp_endpoint")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        """Normalize empty strings to None."""
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def from_env(cls) -> "KMSConfig":
        """Create KMSConfig by loading values from environment.

        Returns:
            Populated KMSConfig instance.
        """
        config = cls(
            default_key_id=default_key_id(),
            aws_region=(
                os.environ.get("AWS_REGION")
                or os.environ.get("AWS_DEFAULT_REGION")
            ),
            aws_endpoint_url=os.environ.get("KMS_ENDPOINT"),
            gcp_endpoint=os.environ.get("GOOGLE_KMS_ENDPOINT"),
            vault_url=os.environ.get("VAULT_ADDR"),
            vault_token=os.environ.get("VAULT_TOKEN"),
            vault_mount_point=os.environ.get("VAULT_TRANSIT_MOUNT", "transit"),
        )
        logger.debug(
            "Loaded KMS config (default key: %s, vault mount: %s)",
            config.default_key_id, config.vault_mount_point,
        )
        return config
