"""Local disk storage, served back through the `/uploads` static mount."""

from pathlib import Path

from starlette.concurrency import run_in_threadpool

from collavio.config import settings


class LocalStorage:
    provider = "local"

    def __init__(self, root: str = None):
        self.root = Path(root or settings.UPLOAD_DIR)

    async def ensure_ready(self):
        await run_in_threadpool(self.root.mkdir, parents=True, exist_ok=True)

    def _write(self, target: Path, data: bytes):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def upload(self, object_path: str, data: bytes, content_type: str, base_url: str = "") -> dict:
        await run_in_threadpool(self._write, self.root / object_path, data)
        return {
            "path": object_path,
            "url": f"{base_url.rstrip('/')}/uploads/{object_path}",
            "provider": self.provider,
        }
