"""Cloudinary storage client for video and thumbnail files."""

import io
import os
import time

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from starlette.concurrency import run_in_threadpool

from collavio.config import settings
from collavio.storage.errors import StorageNotConfigured

FOLDER_PREFIX = "collavio"


class CloudinaryStorage:
    provider = "cloudinary"

    def __init__(self):
        self._configured = False

    def _ensure_configured(self):
        """Configure Cloudinary SDK once."""
        if not self._configured:
            cloudinary.config(
                cloud_name=settings.CLOUDINARY_CLOUD_NAME,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )
            self._configured = True

    async def ensure_ready(self):
        if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET):
            raise StorageNotConfigured(
                "Cloudinary credentials are not set. Configure Cloudinary or set STORAGE_PROVIDER=local."
            )
        self._ensure_configured()

    async def upload(self, object_path: str, data: bytes, content_type: str, base_url: str = "") -> dict:
        """Upload as a private asset and return a time-limited download URL."""
        self._ensure_configured()
        resource_type = "image" if (content_type or "").startswith("image/") else "video"
        public_id, ext = os.path.splitext(f"{FOLDER_PREFIX}/{object_path}")

        # Wrap bytes in BytesIO so Cloudinary SDK can read it as a file
        result = await run_in_threadpool(
            cloudinary.uploader.upload,
            io.BytesIO(data),
            public_id=public_id,
            resource_type=resource_type,
            type="private",
            overwrite=True,
        )
        stored_id = result.get("public_id", public_id)
        url = cloudinary.utils.private_download_url(
            stored_id,
            result.get("format") or ext.lstrip("."),
            resource_type=resource_type,
            type="private",
            expires_at=int(time.time()) + settings.SIGNED_URL_EXPIRES_SECONDS,
        )
        return {
            "path": stored_id,
            "url": url,
            "provider": self.provider,
        }
