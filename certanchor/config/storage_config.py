"""Object store configuration.

Environment Variables:
- STORAGE_BACKEND: "stub" or "s3" (default: stub)
- STORAGE_BUCKET: Bucket receiving the documents (required for s3)
- STORAGE_PREFIX: Key prefix (default: certificates)
- STORAGE_REGION: AWS region (optional, boto3 default chain otherwise)
- STORAGE_ENDPOINT_URL: Custom S3 endpoint, e.g. MinIO (optional)
- STORAGE_TIMEOUT: Seconds before a store write is deferred (default: 10.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from certanchor.config._env import get_float_env, get_str_env
from certanchor.domain.errors.configuration import ConfigurationError

STORAGE_BACKENDS = frozenset({"stub", "s3"})


@dataclass(frozen=True)
class StorageConfig:
    """Settings for the document object store."""

    backend: str = "stub"
    bucket: Optional[str] = None
    prefix: str = "certificates"
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"backend must be one of {sorted(STORAGE_BACKENDS)}, got {self.backend!r}"
            )
        if not self.prefix.strip("/"):
            raise ValueError("prefix must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )

    def require_backend_settings(self) -> None:
        """Raise ConfigurationError if the s3 backend has no bucket."""
        if self.backend == "s3" and not self.bucket:
            raise ConfigurationError("STORAGE_BUCKET", "required when STORAGE_BACKEND=s3")

    @classmethod
    def from_environment(cls) -> "StorageConfig":
        return cls(
            backend=(get_str_env("STORAGE_BACKEND", "stub") or "stub").lower(),
            bucket=get_str_env("STORAGE_BUCKET"),
            prefix=get_str_env("STORAGE_PREFIX", "certificates") or "certificates",
            region=get_str_env("STORAGE_REGION"),
            endpoint_url=get_str_env("STORAGE_ENDPOINT_URL"),
            timeout_seconds=get_float_env("STORAGE_TIMEOUT", 10.0),
        )
