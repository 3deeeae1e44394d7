"""
Signed-URL Gateway

Thin facade over the S3-compatible object storage (MinIO). Issues
time-bounded, single-verb URLs for one key and nothing else; no state
is retained between calls.

The boto3 client is synchronous, so every call is pushed to the default
executor to keep the event loop free while the client signs or talks to
the storage endpoint.
"""
import asyncio
import logging
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from config.app_config import StorageSettings
from constants import DeliveryFormat, SignedUrlTTL
from exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

# Caller-facing override names -> S3 presign parameter names
_OVERRIDE_PARAMS = {
    "content_disposition": "ResponseContentDisposition",
    "content_type": "ResponseContentType",
    "cache_control": "ResponseCacheControl",
}


def download_overrides(filename: str) -> dict:
    """Response overrides that make the browser save the object as an attachment."""
    safe_name = filename.replace('"', "")
    return {"content_disposition": f'attachment; filename="{safe_name}"'}


def inline_overrides(content_type: str = DeliveryFormat.CONTENT_TYPE) -> dict:
    """Response overrides that make the object play inline in the browser."""
    return {"content_disposition": "inline", "content_type": content_type}


class SignedUrlGateway:
    """
    Issues signed PUT/GET URLs against a single bucket.

    Args:
        settings: Storage connection settings
        client: Optional pre-built boto3 S3 client (tests inject a stub)
    """

    def __init__(self, settings: StorageSettings, client=None):
        self.bucket = settings.bucket
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=settings.access_key,
                aws_secret_access_key=settings.secret_key,
                region_name=settings.region,
            )
            client = session.client(
                "s3",
                endpoint_url=settings.endpoint_url,
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        self.s3 = client

    async def _presign(self, client_method: str, params: dict, ttl_seconds: int, key: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None,
                lambda: self.s3.generate_presigned_url(
                    client_method,
                    Params=params,
                    ExpiresIn=int(ttl_seconds),
                ),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Presign {client_method} failed for {key}: {e}")
            raise StorageUnavailableError(
                operation=client_method,
                key=key,
                message=f"Could not sign {client_method} URL for {key}: {e}",
            ) from e

    async def issue_put(self, key: str, ttl_seconds: int = SignedUrlTTL.UPLOAD_SECONDS) -> str:
        """
        Issue a signed upload URL for `key`.

        Raises:
            StorageUnavailableError: If the storage client cannot produce a URL
        """
        return await self._presign(
            "put_object",
            {"Bucket": self.bucket, "Key": key},
            ttl_seconds,
            key,
        )

    async def issue_get(
        self,
        key: str,
        ttl_seconds: int = SignedUrlTTL.VIEW_SECONDS,
        response_overrides: Optional[dict] = None,
    ) -> str:
        """
        Issue a signed download URL for `key`.

        Args:
            key: Object key
            ttl_seconds: URL lifetime
            response_overrides: Optional `content_disposition` / `content_type` /
                `cache_control` values the storage should answer with, used to
                serve the same object as an attachment or as an inline player source

        Raises:
            StorageUnavailableError: If the storage client cannot produce a URL
        """
        params = {"Bucket": self.bucket, "Key": key}
        for name, value in (response_overrides or {}).items():
            param = _OVERRIDE_PARAMS.get(name)
            if param is None:
                raise ValueError(f"Unsupported response override: {name}")
            params[param] = value
        return await self._presign("get_object", params, ttl_seconds, key)

    async def check_connection(self) -> bool:
        """List buckets once to verify credentials and reachability. Never raises."""
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, self.s3.list_buckets)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Object storage connection error: {e}")
            return False
        names = [b.get("Name") for b in response.get("Buckets", [])]
        logger.info(f"Object storage buckets: {names}")
        if self.bucket not in names:
            logger.warning(f"Configured bucket '{self.bucket}' not visible to these credentials")
        return True
