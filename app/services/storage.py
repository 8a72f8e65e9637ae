"""
Media Storage Service

Copies provider-hosted media into the application's Google Cloud Storage
bucket so that finished videos are served from our own public domain.
"""

import logging
import secrets
import time
from traceback import format_exc
from typing import Literal, Optional

import requests
from google.cloud import storage

from app.services.errors import StorageUploadError
from config import StorageSettings, get_storage_settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CACHE_CONTROL = "max-age=31536000"
DOWNLOAD_TIMEOUT_SECONDS = 120


def generate_storage_key(
    user_id: str,
    task_id: str,
    file_type: Literal["video", "thumbnail", "image"],
    extension: str,
) -> str:
    """Build a unique object key such as users/<uid>/videos/<task>_<ms>_<rand>.mp4."""
    timestamp = int(time.time() * 1000)
    suffix = secrets.token_hex(3)
    return f"users/{user_id}/{file_type}s/{task_id}_{timestamp}_{suffix}.{extension}"


class MediaStorageService:
    def __init__(
        self,
        settings: StorageSettings,
        client: Optional[storage.Client] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self._client = client
        self.session = session or requests.Session()

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def public_url(self, key: str) -> str:
        return f"{self.settings.public_url}/{key}"

    def is_hosted(self, url: Optional[str]) -> bool:
        """Whether a URL already points into our public storage domain."""
        return bool(url) and url.startswith(f"{self.settings.public_url}/")

    def upload_bytes(
        self,
        data: bytes,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload a buffer under key and return its public URL."""
        try:
            bucket = self.client.bucket(self.settings.bucket_name)
            blob = bucket.blob(key)
            blob.cache_control = CACHE_CONTROL
            blob.upload_from_string(data, content_type=content_type)
        except Exception as e:
            logger.error(f"Failed to upload {key}: {str(e)}\n{format_exc()}")
            raise StorageUploadError(f"Failed to upload {key}: {str(e)}")

        logger.info(f"Uploaded {len(data)} bytes to {key}")
        return self.public_url(key)

    def rehost_from_url(
        self,
        source_url: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Download source_url and store it under key.

        A source URL that is already on our storage domain is returned as-is
        without another upload.
        """
        if self.is_hosted(source_url):
            logger.info(f"File is already in storage, skipping upload: {source_url}")
            return source_url

        try:
            response = self.session.get(source_url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {source_url}: {str(e)}")
            raise StorageUploadError(f"Failed to fetch {source_url}: {str(e)}")

        return self.upload_bytes(response.content, key, content_type)


# Global service instance
_storage_service = None


def get_storage_service() -> MediaStorageService:
    global _storage_service
    if _storage_service is None:
        _storage_service = MediaStorageService(get_storage_settings())
    return _storage_service
