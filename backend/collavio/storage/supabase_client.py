"""Supabase Storage client for video and thumbnail files."""

import logging

import httpx

from collavio.config import settings
from collavio.storage.errors import StorageNotConfigured

logger = logging.getLogger(__name__)


class SupabaseStorage:
    provider = "supabase"

    def __init__(self, http: httpx.AsyncClient, bucket: str = None):
        self.http = http
        self.bucket = bucket or settings.SUPABASE_BUCKET

    def _headers(self):
        """Build authorization headers for Supabase Storage API."""
        key = settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_ANON_KEY
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }

    def _storage_url(self, path: str = "") -> str:
        """Build Supabase Storage REST URL."""
        base = f"{settings.SUPABASE_URL.rstrip('/')}/storage/v1"
        return f"{base}/{path}" if path else base

    async def ensure_ready(self):
        """Fail unless the configured bucket exists."""
        if not settings.SUPABASE_URL:
            raise StorageNotConfigured(
                "SUPABASE_URL is not set. Configure Supabase Storage or set STORAGE_PROVIDER=local."
            )
        try:
            resp = await self.http.get(self._storage_url(f"bucket/{self.bucket}"), headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Supabase Storage unreachable: {e}")
            raise StorageNotConfigured(f"Supabase Storage unreachable: {e}") from e
        if resp.status_code != 200:
            logger.warning(f"Bucket check for '{self.bucket}' returned {resp.status_code}")
            raise StorageNotConfigured(
                f"Storage bucket '{self.bucket}' not found. Enable Supabase Storage "
                "or set STORAGE_PROVIDER=local to save files locally."
            )

    async def upload(self, object_path: str, data: bytes, content_type: str, base_url: str = "") -> dict:
        """Upload bytes and return the object path plus a time-limited signed URL."""
        resp = await self.http.post(
            self._storage_url(f"object/{self.bucket}/{object_path}"),
            headers={
                **self._headers(),
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "true",
            },
            content=data,
        )
        resp.raise_for_status()

        return {
            "path": object_path,
            "url": await self.signed_url(object_path),
            "provider": self.provider,
        }

    async def signed_url(self, object_path: str, expires_in: int = None) -> str:
        resp = await self.http.post(
            self._storage_url(f"object/sign/{self.bucket}/{object_path}"),
            headers={**self._headers(), "Content-Type": "application/json"},
            json={"expiresIn": expires_in or settings.SIGNED_URL_EXPIRES_SECONDS},
        )
        resp.raise_for_status()
        signed = resp.json().get("signedURL", "")
        return self._storage_url(signed.lstrip("/"))
