import os
import logging
from io import BytesIO
from pathlib import Path
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from alembic.config import Config
from alembic import command
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import FastAPI, APIRouter, HTTPException, Depends
from fastapi.staticfiles import StaticFiles
from fastapi.responses import StreamingResponse
from starlette.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from database import engine, get_db, Base, BASE_DIR, DATABASE_URL
import models  # noqa: F401  (registrasi tabel ke Base.metadata)
from errors import LoadError, MinimumItemError, StoreError, UploadError, ValidasiError
from form_tree import apply_mutation, new_laporan
from loader import list_laporan, load_laporan
from pdf_report import generate_laporan_pdf
from reconcile import delete_laporan, save_laporan
from schemas import Laporan, LaporanBaruRequest, MutasiRequest, SimpanResponse
from serializer import resolve_laporan
from storage import UPLOAD_DIR, get_storage
from vocab import (
    ALAT_BERAT_OPTIONS,
    BBM_SATUAN_OPTIONS,
    KECAMATAN_KELURAHAN,
    KOORDINATOR_OPTIONS,
    MATERIAL_DEFAULT_UNITS,
    MATERIAL_OPTIONS,
    PERALATAN_OPTIONS,
    SATUAN_OPTIONS,
    SEDIMEN_OPTIONS,
)

_migrated = False

# ===============================
# ENV & MODE
# ===============================
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / ".env")

IS_DEV = os.getenv("PYTHON_ENV") == "development"

# ===============================
# LOGGING (SATU KALI SAJA)
# ===============================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, LOG_LEVEL, logging.INFO)

logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Matikan log SQLAlchemy di production
if not IS_DEV:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.dialects").setLevel(logging.WARNING)

log_file = BASE_DIR / "app.log"

file_handler = logging.FileHandler(log_file, encoding="utf-8")
file_handler.setLevel(log_level)
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
file_handler.setFormatter(formatter)

# 1. Tambahkan ke Root Logger (untuk aplikasi ini & library umum)
root_logger = logging.getLogger()
root_logger.addHandler(file_handler)

# 2. Tambahkan khusus ke Uvicorn (agar log request HTTP & startup masuk file)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(name).addHandler(file_handler)

logger.info(f"Log file aktif di: {log_file}")


# ===============================
# MIGRASI OTOMATIS
# ===============================
def run_migrations(db_url: str = DATABASE_URL):
    global _migrated
    if _migrated:
        logger.info("Migration sudah pernah dijalankan, skip.")
        return
    _migrated = True

    alembic_ini = ROOT_DIR / "alembic.ini"
    alembic_dir = ROOT_DIR / "alembic"
    if not alembic_ini.exists() or not alembic_dir.exists():
        logger.warning("File atau folder Alembic tidak ditemukan. Melewati migrasi.")
        return

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(alembic_dir))
    # Alembic butuh koneksi sinkron
    cfg.set_main_option("sqlalchemy.url", db_url.replace("sqlite+aiosqlite://", "sqlite://"))

    logger.info("Menjalankan auto migration...")
    try:
        command.upgrade(cfg, "head")
        logger.info("Auto migration selesai dengan sukses.")
    except Exception:
        # Startup tetap jalan; create_all di lifespan melengkapi tabel
        logger.exception("Terjadi kesalahan pada proses migrasi")


# ===============================
# FASTAPI APP (with lifespan)
# ===============================
@asynccontextmanager
async def lifespan(app):
    logger.info("Inisialisasi database...")
    run_migrations()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database siap")
    yield

app = FastAPI(title="Laporan Pemeliharaan Drainase", lifespan=lifespan)

# ===============================
# HEALTH CHECK
# ===============================
@app.get("/health")
async def health_check():
    return {
        "status": "siap",
        "waktu": datetime.now(timezone.utc)
    }

# ===============================
# CORS
# ===============================
if IS_DEV:
    cors_origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost",
        "http://127.0.0.1",
    ]
else:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info(f"CORS allow_origins={cors_origins}")

# ===============================
# STATIC FILES (FOTO STORAGE LOKAL)
# ===============================
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(
    "/uploads",
    StaticFiles(directory=str(UPLOAD_DIR)),
    name="uploads"
)

# ===============================
# ROUTER API
# ===============================
api_router = APIRouter(prefix="/api")


def _validasi_detail(e: ValidasiError) -> dict:
    return {"stage": "validation", "message": e.message, "path": list(e.path)}


def _pdf_response(pdf_bytes: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Access-Control-Expose-Headers": "Content-Disposition"
        }
    )


@api_router.get("/opsi")
async def get_opsi():
    """Daftar pilihan tetap untuk dropdown form."""
    return {
        "sedimen": SEDIMEN_OPTIONS,
        "material": MATERIAL_OPTIONS,
        "material_satuan": MATERIAL_DEFAULT_UNITS,
        "peralatan": PERALATAN_OPTIONS,
        "alat_berat": ALAT_BERAT_OPTIONS,
        "satuan": SATUAN_OPTIONS,
        "bbm_satuan": BBM_SATUAN_OPTIONS,
        "koordinator": KOORDINATOR_OPTIONS,
        "kecamatan": KECAMATAN_KELURAHAN,
    }


@api_router.post("/laporan/baru", response_model=Laporan)
async def buat_laporan_baru(request: LaporanBaruRequest):
    return new_laporan(request.report_type, request.tanggal)


@api_router.post("/laporan/mutasi", response_model=Laporan)
async def mutasi_laporan(request: MutasiRequest):
    try:
        return apply_mutation(request.laporan, request.op, request.path, request.value)
    except MinimumItemError as e:
        logger.info(f"Mutasi ditolak (minimum item): {e.message}")
        raise HTTPException(status_code=422, detail=_validasi_detail(e))
    except ValidasiError as e:
        raise HTTPException(status_code=422, detail=_validasi_detail(e))


def _gagal_simpan(e, **extra) -> dict:
    # laporan_id + tree sebagian dikirim balik agar simpan ulang meng-update
    detail = {"message": str(e), **extra, "laporan_id": e.laporan_id}
    detail["data"] = e.laporan.model_dump(mode="json") if e.laporan is not None else None
    return detail


@api_router.post("/laporan/simpan", response_model=SimpanResponse)
async def simpan_laporan(
    laporan: Laporan,
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
):
    try:
        laporan_id, hasil = await save_laporan(db, laporan, storage)
        return SimpanResponse(laporan_id=laporan_id, data=hasil)

    except ValidasiError as e:
        raise HTTPException(status_code=422, detail=_validasi_detail(e))
    except UploadError as e:
        logger.error(f"Simpan laporan {e.laporan_id} gagal saat upload: {e}")
        raise HTTPException(
            status_code=502,
            detail=_gagal_simpan(e, stage="upload", slot=e.slot, filename=e.filename),
        )
    except StoreError as e:
        logger.error(f"Simpan laporan {e.laporan_id} gagal di database: {e}")
        raise HTTPException(
            status_code=500,
            detail=_gagal_simpan(e, stage="store", level=e.level, operation=e.operation),
        )


@api_router.get("/laporan")
async def get_daftar_laporan(db: AsyncSession = Depends(get_db)):
    try:
        return await list_laporan(db)
    except LoadError as e:
        logger.error(f"Error getting daftar laporan: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@api_router.get("/laporan/{laporan_id}", response_model=Laporan)
async def get_laporan(laporan_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await load_laporan(db, laporan_id)
    except LoadError as e:
        raise HTTPException(status_code=404, detail=str(e))


@api_router.delete("/laporan/{laporan_id}")
async def hapus_laporan(laporan_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await delete_laporan(db, laporan_id)
    except LoadError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        logger.error(f"Hapus laporan {laporan_id} gagal: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "success", "message": "Laporan berhasil dihapus"}


@api_router.get("/laporan/{laporan_id}/pdf")
async def get_laporan_pdf(laporan_id: str, db: AsyncSession = Depends(get_db)):
    # 1. Ambil laporan
    try:
        laporan = await load_laporan(db, laporan_id)
    except LoadError as e:
        raise HTTPException(status_code=404, detail=str(e))

    # 2. Generate PDF dari tree yang sudah resolved
    try:
        pdf_bytes = generate_laporan_pdf(resolve_laporan(laporan))
    except ValidasiError as e:
        raise HTTPException(status_code=422, detail=_validasi_detail(e))

    return _pdf_response(pdf_bytes, f"Laporan_{laporan.report_type.value}_{laporan_id}.pdf")


@api_router.post("/laporan/pdf")
async def render_laporan_pdf(laporan: Laporan):
    """Cetak tree yang belum disimpan; semua foto harus sudah berupa URL."""
    try:
        pdf_bytes = generate_laporan_pdf(resolve_laporan(laporan))
    except ValidasiError as e:
        raise HTTPException(status_code=422, detail=_validasi_detail(e))

    return _pdf_response(pdf_bytes, f"Laporan_{laporan.report_type.value}.pdf")


# Include router in app (harus di akhir setelah semua routes didefinisikan)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_config=None)
