"""
Object storage — text objects in a single S3 (or MinIO) bucket via boto3.

boto3 is synchronous, so every call is pushed to a worker thread with
asyncio.to_thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from storedemo.app.core.config import Settings
from storedemo.app.core.errors import translate_errors

logger = logging.getLogger(__name__)

KEY_PREFIX = "app/"
KEY_SUFFIX = ".txt"
CONTENT_TYPE = "text/plain; charset=utf-8"

_S3_ERRORS = (BotoCoreError, ClientError)
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def object_key(object_id: str) -> str:
    """Derive the storage key for an object id: app/<id>.txt"""
    return f"{KEY_PREFIX}{object_id}{KEY_SUFFIX}"


def build_s3_client(config: Settings):
    """Create a boto3 S3 client honouring custom endpoints and static keys."""
    kwargs = {
        "region_name": config.aws_region,
        "config": Config(
            s3={"addressing_style": "path" if config.S3_FORCE_PATH_STYLE else "auto"},
        ),
    }
    if config.S3_ENDPOINT:
        kwargs["endpoint_url"] = config.S3_ENDPOINT
    if config.AWS_ACCESS_KEY_ID and config.AWS_SECRET_ACCESS_KEY:
        kwargs["aws_access_key_id"] = config.AWS_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = config.AWS_SECRET_ACCESS_KEY
    return boto3.client("s3", **kwargs)


class ObjectStore:
    """Put/get/delete text objects in one bucket."""

    def __init__(self, bucket: str, client=None):
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, config: Settings) -> "ObjectStore":
        client = build_s3_client(config) if config.s3_configured else None
        return cls(config.S3_BUCKET, client)

    @property
    def configured(self) -> bool:
        return bool(self.bucket) and self._client is not None

    async def ping(self) -> bool:
        """HeadBucket. Never raises; False when unconfigured."""
        if not self.configured:
            return False
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self.bucket)
            return True
        except Exception as e:
            logger.debug("S3 ping failed for %s: %s", self.bucket, e)
            return False

    async def wait_until_ready(self, attempts: int, delay: float) -> bool:
        """Best-effort wait for the bucket to appear (local MinIO)."""
        for attempt in range(1, attempts + 1):
            if await self.ping():
                return True
            logger.debug(
                "[startup] waiting for bucket %s attempt=%d/%d",
                self.bucket, attempt, attempts,
            )
            if attempt < attempts:
                await asyncio.sleep(delay)
        return False

    @translate_errors("s3", "put", _S3_ERRORS)
    async def put_text(self, key: str, text: str) -> None:
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=text.encode("utf-8"),
            ContentType=CONTENT_TYPE,
        )

    @translate_errors("s3", "get", _S3_ERRORS)
    async def get_text(self, key: str) -> Optional[str]:
        """Object body as text, or None when the key does not exist."""
        return await asyncio.to_thread(self._get_text_sync, key)

    def _get_text_sync(self, key: str) -> Optional[str]:
        try:
            resp = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code", "") in _MISSING_CODES:
                return None
            raise
        return resp["Body"].read().decode("utf-8")

    @translate_errors("s3", "delete", _S3_ERRORS)
    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
