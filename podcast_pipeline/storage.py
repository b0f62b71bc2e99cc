"""Object storage for source audio, episodes and highlight clips."""

import asyncio
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple

from google.cloud import storage

from .common_exceptions import StorageError

logger = logging.getLogger(__name__)


def parse_gs_url(gs_url: str) -> Optional[Tuple[str, str]]:
    """
    Parse a Google Cloud Storage URL into bucket and blob path.

    Returns:
        Tuple of (bucket_name, blob_path) if valid, None otherwise
    """
    if not gs_url.startswith("gs://"):
        return None
    parts = gs_url[5:].split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def _normalize_key(key: str) -> str:
    normalized = key.lstrip("/")
    if not normalized or ".." in Path(normalized).parts:
        raise StorageError(f"Invalid storage key: {key!r}")
    return normalized


class StorageManager:
    """
    Manages file storage with Cloud Storage integration.

    With a bucket configured, objects go to Google Cloud Storage and are made
    publicly readable. Without one, they are written below a local directory and
    the returned URL is the absolute file path.
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        project_id: Optional[str] = None,
        local_dir: str = "./outputs",
        signed_url_ttl_seconds: int = 7 * 24 * 3600,
        client: Optional[storage.Client] = None,
    ):
        self.bucket_name = bucket_name
        self.local_dir = Path(local_dir)
        self.signed_url_ttl_seconds = signed_url_ttl_seconds
        self.client = None

        if bucket_name:
            self.client = client or storage.Client(project=project_id)
            logger.info(f"[Storage] Google Cloud Storage client initialized for bucket {bucket_name}")
        else:
            logger.info(f"[Storage] No bucket configured, storing files under {self.local_dir.resolve()}")

    @property
    def is_cloud_storage_available(self) -> bool:
        """Check if Cloud Storage is available and configured."""
        return self.client is not None and self.bucket_name is not None

    async def put(self, key: str, data: bytes, content_type: str = "audio/mpeg") -> str:
        """
        Store ``data`` under ``key`` and return a URL for it.

        Raises:
            StorageError: If the upload fails
        """
        key = _normalize_key(key)
        try:
            if self.is_cloud_storage_available:
                url = await asyncio.to_thread(self._put_cloud, key, data, content_type)
            else:
                url = await asyncio.to_thread(self._put_local, key, data)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Storage upload failed for {key}: {e}", details={"key": key}) from e

        logger.info(f"[Storage] Stored {len(data)} bytes at {key}")
        return url

    async def get(self, key: str) -> str:
        """
        Return a readable URL for ``key``: a signed URL in the cloud, a file path locally.

        Raises:
            StorageError: If the object cannot be located
        """
        key = _normalize_key(key)
        if self.is_cloud_storage_available:
            try:
                return await asyncio.to_thread(self._signed_url, key)
            except Exception as e:
                raise StorageError(f"Storage signing failed for {key}: {e}", details={"key": key}) from e

        path = self.local_dir / key
        if not path.exists():
            raise StorageError(f"Storage object not found: {key}", details={"key": key})
        return str(path.resolve())

    def _put_cloud(self, key: str, data: bytes, content_type: str) -> str:
        bucket = self.client.bucket(self.bucket_name)
        blob = bucket.blob(key)
        blob.upload_from_string(data, content_type=content_type)
        blob.make_public()
        return blob.public_url

    def _put_local(self, key: str, data: bytes) -> str:
        path = self.local_dir / key
        os.makedirs(path.parent, exist_ok=True)
        path.write_bytes(data)
        return str(path.resolve())

    def _signed_url(self, key: str) -> str:
        bucket = self.client.bucket(self.bucket_name)
        blob = bucket.blob(key)
        return blob.generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=self.signed_url_ttl_seconds),
            method="GET",
        )
