"""Unified storage layer: one configured backend per process."""

import logging
import re
from dataclasses import dataclass

import httpx
from fastapi import Request

from collavio.config import settings
from collavio.storage.cloudinary_client import CloudinaryStorage
from collavio.storage.errors import StorageNotConfigured
from collavio.storage.local import LocalStorage
from collavio.storage.supabase_client import SupabaseStorage
from collavio.utils.helpers import utc_now

logger = logging.getLogger(__name__)

__all__ = ["IncomingFile", "StorageNotConfigured", "build_storage", "get_storage", "object_path", "store_file"]


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def build_storage(http: httpx.AsyncClient, provider: str = None):
    provider = (provider or settings.STORAGE_PROVIDER).lower()
    if provider == "local":
        return LocalStorage()
    if provider == "cloudinary":
        return CloudinaryStorage()
    if provider == "supabase":
        return SupabaseStorage(http)
    raise StorageNotConfigured(f"Unknown STORAGE_PROVIDER '{provider}'")


def get_storage(request: Request):
    return request.app.state.storage


def object_path(kind: str, workspace_id: str, video_id: str, filename: str) -> str:
    """`{kind}/{workspace}/{video}/{epoch_ms}-{filename}` with a path-safe filename."""
    safe_name = re.sub(r"[^A-Za-z0-9._-]+", "_", filename or "upload") or "upload"
    stamp = int(utc_now().timestamp() * 1000)
    return f"{kind}/{workspace_id}/{video_id}/{stamp}-{safe_name}"


async def store_file(storage, kind: str, workspace_id: str, video_id: str, incoming: IncomingFile, base_url: str) -> dict:
    path = object_path(kind, workspace_id, video_id, incoming.filename)
    result = await storage.upload(path, incoming.data, incoming.content_type, base_url)
    logger.info(f"Stored {kind[:-1]} for video {video_id} via {result['provider']} ({incoming.size} bytes)")
    return result
