import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

# Harus diset sebelum database.py diimport
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="laporan-test-"))
os.environ["STORAGE_BACKEND"] = "local"
os.environ["PHOTO_MAX_DIMENSION"] = "1920"

from database import Base  # noqa: E402
import models  # noqa: E402,F401


class FakeStorage:
    """
    Object storage di memori. `fail_on` berisi potongan path yang dibuat gagal,
    `delay_on` potongan path yang diunggah lambat (`delay` detik).
    """

    def __init__(self, fail_on=(), delay_on=(), delay=0.3):
        self.uploads = []
        self.fail_on = set(fail_on)
        self.delay_on = set(delay_on)
        self.delay = delay

    async def upload(self, data, path, content_type="image/jpeg"):
        if any(part in path for part in self.delay_on):
            await asyncio.sleep(self.delay)
        if any(part in path for part in self.fail_on):
            raise RuntimeError(f"storage menolak {path}")
        self.uploads.append((path, data, content_type))
        return f"https://storage.test/laporan-photos/{path}"

    @property
    def paths(self):
        return [path for path, _, _ in self.uploads]


@pytest.fixture()
def db_path(tmp_path):
    path = tmp_path / "laporan_test.db"
    engine = create_engine(f"sqlite:///{path.as_posix()}")
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    return path


@pytest.fixture()
def async_url(db_path):
    return f"sqlite+aiosqlite:///{db_path.as_posix()}"


@pytest.fixture()
def run_db(async_url):
    """Jalankan `fn(session)` async di database test dan kembalikan hasilnya."""

    def run(fn):
        async def _main():
            engine = create_async_engine(async_url, poolclass=NullPool)
            Session = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
            try:
                async with Session() as session:
                    return await fn(session)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return run


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def make_storage():
    return FakeStorage
