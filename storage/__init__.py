"""Storage module for files kept in the hosted object storage."""

import logging
from typing import Optional

import httpx

from auth import api_headers
from config import settings_conf

logger = logging.getLogger(__name__)

STORAGE_PATH = "/storage/v1/object"

class StorageError(Exception):
    """Raised when a file cannot be stored."""
    pass

class StorageClient:
    """Uploads objects to a bucket and builds their public URLs."""

    def __init__(self, bucket: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.bucket = bucket or settings_conf['avatar_bucket']
        self.client = client
        self.base_url = f"{settings_conf['supabase_url']}{STORAGE_PATH}"

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            self.client = httpx.AsyncClient(timeout=60)
        return self.client

    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: str,
        access_token: Optional[str] = None,
        upsert: bool = True
    ) -> str:
        """Upload a file to the bucket.

        Args:
            path: Object path inside the bucket
            content: File bytes
            content_type: MIME type of the file
            access_token: Session token of the uploading user
            upsert: Overwrite an existing object at the same path

        Returns:
            The object path

        Raises:
            StorageError: If the upload fails
        """
        headers = api_headers(access_token)
        headers['Content-Type'] = content_type
        headers['x-upsert'] = 'true' if upsert else 'false'

        try:
            response = await self._get_client().post(
                f"{self.base_url}/{self.bucket}/{path}",
                content=content,
                headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Upload of {path} failed: {e}")
            raise StorageError(f"Upload failed: {e}")

        if response.status_code >= 300:
            logger.error(f"Storage error uploading {path}: {response.status_code} {response.text}")
            raise StorageError(f"Upload failed with status {response.status_code}")

        logger.info(f"Uploaded {path} to bucket {self.bucket}")
        return path

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/public/{self.bucket}/{path}"

__all__ = ['StorageClient', 'StorageError']
