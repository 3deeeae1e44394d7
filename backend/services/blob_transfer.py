"""
Blob transfer over signed URLs.

Streams object bodies between storage and local files using httpx so the
transcode pipeline never holds a whole video in memory.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

import httpx

from constants import TransferConfig
from exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


def _default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        TransferConfig.READ_TIMEOUT_SECONDS,
        connect=TransferConfig.CONNECT_TIMEOUT_SECONDS,
    )


class BlobTransfer:
    """
    Downloads and uploads object bodies through signed URLs.

    Args:
        client: Optional shared httpx.AsyncClient; one is created per call otherwise
        chunk_size: Streaming chunk size in bytes
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, chunk_size: int = TransferConfig.CHUNK_SIZE):
        self._client = client
        self.chunk_size = chunk_size

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _client_or_new(self) -> tuple[httpx.AsyncClient, bool]:
        if self._client is not None:
            return self._client, False
        return httpx.AsyncClient(timeout=_default_timeout()), True

    async def download_to(self, url: str, path: Path) -> int:
        """
        Stream the object behind a signed GET URL into `path`.

        Returns:
            Number of bytes written

        Raises:
            StorageUnavailableError: On transport errors or a non-success status
        """
        loop = asyncio.get_running_loop()
        client, owned = self._client_or_new()
        written = 0
        try:
            async with client.stream("GET", url) as response:
                if response.status_code >= 300:
                    raise StorageUnavailableError(
                        operation="download",
                        message=f"Download failed with HTTP {response.status_code}",
                    )
                # File I/O runs in the executor so the event loop keeps serving signaling
                f = await loop.run_in_executor(None, open, path, "wb")
                try:
                    async for chunk in response.aiter_bytes(self.chunk_size):
                        await loop.run_in_executor(None, f.write, chunk)
                        written += len(chunk)
                finally:
                    await loop.run_in_executor(None, f.close)
        except httpx.HTTPError as e:
            raise StorageUnavailableError(operation="download", message=f"Download failed: {e}") from e
        finally:
            if owned:
                await client.aclose()

        logger.debug(f"Downloaded {written:,} bytes to {path}")
        return written

    async def upload_from(self, url: str, path: Path, content_type: str) -> int:
        """
        Stream `path` to a signed PUT URL.

        Returns:
            Number of bytes sent

        Raises:
            StorageUnavailableError: On transport errors or a non-success status
        """
        path = Path(path)
        size = path.stat().st_size
        chunk_size = self.chunk_size
        loop = asyncio.get_running_loop()

        async def body():
            f = await loop.run_in_executor(None, open, path, "rb")
            try:
                while True:
                    chunk = await loop.run_in_executor(None, f.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                await loop.run_in_executor(None, f.close)

        client, owned = self._client_or_new()
        try:
            response = await client.put(
                url,
                content=body(),
                headers={"Content-Type": content_type, "Content-Length": str(size)},
            )
            if response.status_code >= 300:
                raise StorageUnavailableError(
                    operation="upload",
                    message=f"Upload failed with HTTP {response.status_code}",
                )
        except httpx.HTTPError as e:
            raise StorageUnavailableError(operation="upload", message=f"Upload failed: {e}") from e
        finally:
            if owned:
                await client.aclose()

        logger.debug(f"Uploaded {size:,} bytes from {path}")
        return size
