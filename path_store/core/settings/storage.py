"""S3-compatible object storage configuration settings.

Environment variables use STORAGE_ prefix.
Example: STORAGE_ENDPOINT="http://localhost:9000"
         STORAGE_BUCKET="uploads"

Supports:
- AWS S3 (default, no endpoint needed)
- MinIO (set endpoint to MinIO server URL)
- LocalStack (set endpoint to LocalStack URL)
- Any S3-compatible storage
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, SecretStr, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackendType(StrEnum):
    """Supported storage backend implementations."""

    S3 = "s3"
    MINIO = "minio"


class StorageSettings(BaseSettings):
    """S3-compatible object storage settings.

    Environment variables use STORAGE_ prefix.
    Example: STORAGE_ENABLED=true
    """

    # ──────────────────────────────────────────────────────────────
    # Enable/Disable toggle
    # ──────────────────────────────────────────────────────────────

    enabled: bool = Field(
        default=False,
        description="Enable S3-compatible object storage (disabled by default)",
    )

    backend: StorageBackendType = Field(
        default=StorageBackendType.S3,
        description="Storage backend implementation (s3 or minio)",
    )

    # ──────────────────────────────────────────────────────────────
    # S3 Connection Configuration
    # ──────────────────────────────────────────────────────────────

    endpoint: str | None = Field(
        default=None,
        description="S3-compatible endpoint URL (for MinIO/LocalStack). None for AWS S3.",
    )

    region: str = Field(
        default="us-east-1",
        description="AWS region (used for AWS S3 and request signing)",
    )

    access_key: SecretStr | None = Field(
        default=None,
        description="S3 access key ID",
    )

    secret_key: SecretStr | None = Field(
        default=None,
        description="S3 secret access key",
    )

    use_ssl: bool = Field(
        default=True,
        description="Use SSL/TLS for S3 connections (set False for local MinIO without TLS)",
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify SSL certificates (set False for self-signed certs in local MinIO)",
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum number of retry attempts performed by the S3 client",
    )

    retry_mode: str = Field(
        default="adaptive",
        description="botocore retry mode: standard, adaptive, or legacy",
    )

    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="S3 connect/read timeout in seconds",
    )

    max_pool_connections: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum number of connections in the connection pool",
    )

    # ──────────────────────────────────────────────────────────────
    # Bucket Configuration
    # ──────────────────────────────────────────────────────────────

    bucket: str | None = Field(
        default=None,
        min_length=3,
        max_length=63,
        description="Bucket selected by default in the CLI",
    )

    public_url_base: str | None = Field(
        default=None,
        description=(
            "Base URL for public object links (CDN or proxy). "
            "Derived from endpoint/region when unset."
        ),
    )

    # ──────────────────────────────────────────────────────────────
    # Validators
    # ──────────────────────────────────────────────────────────────

    @field_validator("retry_mode")
    @classmethod
    def _validate_retry_mode(cls, value: str) -> str:
        """Validate retry_mode is one of the allowed values."""
        allowed_modes = {"standard", "adaptive", "legacy"}
        if value not in allowed_modes:
            raise ValueError(f"retry_mode must be one of {allowed_modes}, got {value}")
        return value

    @field_validator("endpoint", "public_url_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

    @model_validator(mode="after")
    def _validate_credential_consistency(self) -> StorageSettings:
        """Validate that both credentials are provided together or neither.

        Both must be provided for static credentials, or neither for IAM
        role authentication.
        """
        has_access_key = self.access_key is not None
        has_secret_key = self.secret_key is not None

        if has_access_key != has_secret_key:
            raise ValueError(
                "Both access_key and secret_key must be provided together when using "
                "static credentials. Provide both or neither (for IAM role authentication)."
            )

        return self

    # ──────────────────────────────────────────────────────────────
    # Computed Properties
    # ──────────────────────────────────────────────────────────────

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_configured(self) -> bool:
        """Check if storage is enabled.

        Credential consistency is already enforced by the model validator.
        """
        return self.enabled

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_minio(self) -> bool:
        """Check if configured for MinIO/S3-compatible (has custom endpoint)."""
        return self.endpoint is not None

    # ──────────────────────────────────────────────────────────────
    # Helper Methods
    # ──────────────────────────────────────────────────────────────

    def get_boto3_config(self) -> dict[str, Any]:
        """Get configuration dict for the aioboto3 client.

        Returns:
            Dictionary suitable for creating an S3 client: credentials (if
            provided), endpoint, SSL settings, and region.
        """
        if not self.is_configured:
            raise ValueError("Storage not configured")

        config: dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_ssl,
            "verify": self.verify_ssl,
        }

        # Without static credentials boto3 falls back to IAM role authentication
        if self.access_key is not None and self.secret_key is not None:
            config["aws_access_key_id"] = self.access_key.get_secret_value()
            config["aws_secret_access_key"] = self.secret_key.get_secret_value()

        if self.endpoint:
            config["endpoint_url"] = self.endpoint

        return config

    # ──────────────────────────────────────────────────────────────
    # Model Configuration
    # ──────────────────────────────────────────────────────────────

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )
