"""S3 object store adapter.

Stores uploaded certificates in a bucket using boto3. The boto3 client is
synchronous, so put() runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from certanchor.config.storage_config import StorageConfig
from certanchor.domain.errors.storage import ObjectStoreError

logger = structlog.get_logger(__name__)


class S3ObjectStore:
    """ObjectStoreProtocol implementation over an S3 bucket."""

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_config(cls, config: StorageConfig) -> S3ObjectStore:
        client = boto3.client(
            "s3",
            region_name=config.region,
            endpoint_url=config.endpoint_url,
            config=Config(
                connect_timeout=config.timeout_seconds,
                read_timeout=config.timeout_seconds,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )
        return cls(client=client, bucket=config.bucket or "")

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put(self, key: str, content: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning(
                "s3_put_failed",
                bucket=self._bucket,
                key=key,
                error_type=type(exc).__name__,
            )
            raise ObjectStoreError(f"Could not store object {key}", key=key) from exc

        logger.debug("s3_put_succeeded", bucket=self._bucket, key=key, size=len(content))
        return f"s3://{self._bucket}/{key}"
