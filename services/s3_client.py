"""
Object storage clients (S3 compatible) built on boto3.

S3Client       -- prefixed keys + presigned upload URLs (file uploads)
S3CacheClient  -- JSON query results cache (upload / head / get)

boto3 is blocking, so network calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from backend.errors import MissingConfigError, NotFoundError, S3Error
from config_env import S3Config

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def build_boto_client(config: S3Config):
    boto_config = BotoConfig(
        signature_version="s3v4",
        read_timeout=config.request_timeout / 1000,
        s3={"addressing_style": "path" if config.force_path_style else "auto"},
    )
    kwargs: Dict[str, Any] = {
        "endpoint_url": config.endpoint,
        "region_name": config.region,
        "config": boto_config,
    }
    if config.access_key and config.secret_key:
        kwargs["aws_access_key_id"] = config.access_key
        kwargs["aws_secret_access_key"] = config.secret_key
        logger.debug("Using S3 storage with access key credentials")
    else:
        logger.debug("Using S3 storage with IAM role credentials")
    return boto3.client("s3", **kwargs)


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        return f"{err.get('Code', 'ClientError')} - {err.get('Message', str(error))}"
    return str(error)


def _is_not_found(error: Exception) -> bool:
    if not isinstance(error, ClientError):
        return False
    return str(error.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


class S3Client:
    """Base client: configuration, key prefixing and presigned uploads."""

    def __init__(self, config: S3Config, client: Any = None):
        self.configuration = config
        self._s3 = client
        if self._s3 is None and config.is_configured:
            self._s3 = build_boto_client(config)

    @property
    def is_enabled(self) -> bool:
        return self.configuration.is_configured and self._s3 is not None

    def _require_client(self):
        if not self.is_enabled:
            raise MissingConfigError("S3 configuration is not set")
        return self._s3

    def get_prefixed_key(self, key: str) -> str:
        prefix = self.configuration.path_prefix
        if not prefix:
            return key

        normalized_prefix = prefix.strip("/")
        normalized_key = key.lstrip("/")
        if not normalized_prefix:
            return normalized_key
        return f"{normalized_prefix}/{normalized_key}"

    def create_upload_url(self, key: str, content_type: str) -> str:
        """Presigned PUT URL for ``key`` (already prefixed)."""
        s3 = self._require_client()
        try:
            return s3.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.configuration.bucket,
                    "Key": key,
                    "ContentType": content_type,
                },
                ExpiresIn=self.configuration.expiration_time,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to create upload url. %s", _error_message(e))
            raise S3Error(f"Failed to create upload url. {_error_message(e)}", data={"key": key}) from e


class S3CacheClient(S3Client):
    """Query results cache stored as ``<key>.json`` objects."""

    async def upload_results(
        self,
        key: str,
        results: bytes,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        s3 = self._require_client()
        sanitized_metadata = {
            meta_key: json.dumps(value) if isinstance(value, (dict, list)) else str(value)
            for meta_key, value in (metadata or {}).items()
        }
        prefixed_key = self.get_prefixed_key(f"{key}.json")
        try:
            await asyncio.to_thread(
                s3.put_object,
                Bucket=self.configuration.bucket,
                Key=prefixed_key,
                Body=results,
                ContentType="application/json",
                Metadata=sanitized_metadata,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload results to s3. %s", _error_message(e))
            raise S3Error(
                f"Failed to upload results to s3. {_error_message(e)}", data={"key": key}
            ) from e

    async def get_results_metadata(self, key: str) -> Optional[Dict[str, Any]]:
        """Head of ``<key>.json``; None when the object does not exist."""
        s3 = self._require_client()
        prefixed_key = self.get_prefixed_key(f"{key}.json")
        try:
            return await asyncio.to_thread(
                s3.head_object, Bucket=self.configuration.bucket, Key=prefixed_key
            )
        except (BotoCoreError, ClientError) as e:
            if _is_not_found(e):
                return None
            logger.error("Failed to get results metadata from s3. %s", _error_message(e))
            raise S3Error(
                f"Failed to get results metadata from s3. {_error_message(e)}", data={"key": key}
            ) from e

    async def get_results(self, key: str, extension: str = "json") -> bytes:
        s3 = self._require_client()
        prefixed_key = self.get_prefixed_key(f"{key}.{extension}")
        try:
            response = await asyncio.to_thread(
                s3.get_object, Bucket=self.configuration.bucket, Key=prefixed_key
            )
            return await asyncio.to_thread(response["Body"].read)
        except (BotoCoreError, ClientError) as e:
            if _is_not_found(e):
                raise NotFoundError(f"Results {key} not found") from e
            logger.error("Failed to get results from s3. %s", _error_message(e))
            raise S3Error(
                f"Failed to get results from s3. {_error_message(e)}", data={"key": key}
            ) from e
