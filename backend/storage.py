"""
Object storage untuk foto laporan.

Dua backend:
- local    : file ditulis ke DATA_DIR/uploads dan disajikan lewat /uploads
- supabase : Supabase Storage REST API (httpx)

Keduanya punya satu operasi: `await upload(data, path, content_type) -> url`.
Upload ke path yang sama menimpa file lama (upsert).
"""
import asyncio
import logging
import os
from pathlib import Path
from urllib.parse import quote

import httpx

from database import BASE_DIR

logger = logging.getLogger(__name__)

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "laporan-photos")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")

UPLOAD_DIR = BASE_DIR / "uploads"


class LocalStorage:
    def __init__(self, root: Path = UPLOAD_DIR, bucket: str = STORAGE_BUCKET, base_url: str = PUBLIC_BASE_URL):
        self.root = Path(root)
        self.bucket = bucket
        self.base_url = base_url

    def _target(self, path: str) -> Path:
        target = (self.root / self.bucket / path).resolve()
        bucket_root = (self.root / self.bucket).resolve()
        if bucket_root not in target.parents:
            raise ValueError(f"Path upload tidak valid: {path}")
        return target

    @staticmethod
    def _tulis(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as f:
            f.write(data)

    async def upload(self, data: bytes, path: str, content_type: str = "image/jpeg") -> str:
        target = self._target(path)
        await asyncio.to_thread(self._tulis, target, data)
        logger.debug(f"[STORAGE] Simpan lokal {target} ({len(data)} byte)")
        return f"{self.base_url}/uploads/{self.bucket}/{quote(path)}"


class SupabaseStorage:
    def __init__(self, url: str = SUPABASE_URL, key: str = SUPABASE_SERVICE_KEY, bucket: str = STORAGE_BUCKET,
                 timeout: float = 60.0):
        if not url or not key:
            raise ValueError("SUPABASE_URL dan SUPABASE_SERVICE_KEY wajib diisi untuk STORAGE_BACKEND=supabase")
        self.url = url.rstrip("/")
        self.key = key
        self.bucket = bucket
        self.timeout = timeout

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def upload(self, data: bytes, path: str, content_type: str = "image/jpeg") -> str:
        endpoint = f"{self.url}/storage/v1/object/{self.bucket}/{quote(path)}"
        headers = {
            "Authorization": f"Bearer {self.key}",
            "apikey": self.key,
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        async with httpx.AsyncClient() as client:
            response = await client.post(endpoint, content=data, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        logger.debug(f"[STORAGE] Upload supabase {path} -> {response.status_code}")
        return self.public_url(path)


_storage = None


def get_storage():
    """Dependency FastAPI: satu instance storage per proses."""
    global _storage
    if _storage is None:
        if STORAGE_BACKEND == "supabase":
            _storage = SupabaseStorage()
        elif STORAGE_BACKEND == "local":
            _storage = LocalStorage()
        else:
            raise ValueError(f"STORAGE_BACKEND tidak dikenal: {STORAGE_BACKEND}")
        logger.info(f"Storage backend aktif: {STORAGE_BACKEND} (bucket {STORAGE_BUCKET})")
    return _storage
