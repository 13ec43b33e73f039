"""
Unggah foto lampiran sebelum tree disimpan.

Setiap slot foto berisi daftar berurutan FotoTersimpan / FotoBaru. Hasilnya
daftar FotoTersimpan dengan panjang dan urutan yang sama; foto yang sudah
tersimpan tidak pernah diunggah ulang.
"""
import asyncio
import io
import logging
import os
from pathlib import PurePosixPath
from typing import Dict, List

from PIL import Image, UnidentifiedImageError

from errors import UploadError
from schemas import FotoBaru, FotoTersimpan, PenangananDetail
from variants import is_active

logger = logging.getLogger(__name__)

# field di tree -> nama slot di path storage
SLOT_NAMES = {
    "foto_0": "0",
    "foto_50": "50",
    "foto_100": "100",
    "foto_sket": "sket",
}

PHOTO_MAX_DIMENSION = int(os.getenv("PHOTO_MAX_DIMENSION", "1920"))


def path_foto(laporan_id: str, kegiatan_id: str, detail_id: str, slot: str, filename: str) -> str:
    # Hanya nama file; folder dari sisi klien dibuang
    nama = PurePosixPath(filename.replace("\\", "/")).name
    if not nama:
        raise ValueError("Nama file foto kosong")
    return f"{laporan_id}/{kegiatan_id}/{detail_id}/{SLOT_NAMES.get(slot, slot)}/{nama}"


def compress_image(data: bytes, max_dimension: int = PHOTO_MAX_DIMENSION) -> bytes:
    """Perkecil foto yang lebih besar dari max_dimension (0 = tidak diubah); format asli dipertahankan."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            if max_dimension <= 0 or max(img.size) <= max_dimension:
                return data
            fmt = img.format or "JPEG"
            img.thumbnail((max_dimension, max_dimension))
            if fmt == "JPEG" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            out = io.BytesIO()
            img.save(out, format=fmt)
            return out.getvalue()
    except UnidentifiedImageError:
        logger.warning("[FOTO] File bukan gambar yang dikenali, diunggah apa adanya")
        return data


async def upload_slot(storage, fotos, slot: str, laporan_id: str, kegiatan_id: str, detail_id: str) -> List[FotoTersimpan]:
    # Berurutan di dalam satu slot agar urutan foto terjaga
    hasil = []
    for foto in fotos:
        if isinstance(foto, FotoTersimpan):
            hasil.append(foto)
            continue
        if not isinstance(foto, FotoBaru):
            raise UploadError(slot, str(foto), TypeError("jenis foto tidak dikenal"))
        try:
            path = path_foto(laporan_id, kegiatan_id, detail_id, slot, foto.filename)
            data = await asyncio.to_thread(compress_image, foto.data)
            url = await storage.upload(data, path, foto.content_type)
        except Exception as e:
            logger.error(f"[FOTO] Upload gagal slot={slot} file={foto.filename}: {e}")
            raise UploadError(slot, foto.filename, e) from e
        hasil.append(FotoTersimpan(url=url))
    return hasil


async def upload_detail_photos(storage, laporan_id: str, kegiatan_id: str, detail_id: str,
                               detail: PenangananDetail, variant) -> Dict[str, List[FotoTersimpan]]:
    """
    Unggah semua foto baru di satu aktifitas penanganan.

    Slot yang nonaktif untuk jenis laporan ini dikembalikan kosong. Antar slot
    berjalan bersamaan; begitu satu slot gagal, upload slot lain yang masih
    berjalan dibatalkan (upload yang sudah selesai tidak ditarik kembali).
    """
    aktif = [slot for slot in SLOT_NAMES if is_active(variant, "detail", slot)]

    tasks = [
        asyncio.ensure_future(
            upload_slot(storage, getattr(detail, slot), slot, laporan_id, kegiatan_id, detail_id)
        )
        for slot in aktif
    ]
    try:
        hasil = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    fotos = {slot: [] for slot in SLOT_NAMES}
    fotos.update(dict(zip(aktif, hasil)))

    baru = sum(1 for slot in aktif for f in getattr(detail, slot) if isinstance(f, FotoBaru))
    if baru:
        logger.info(f"[FOTO] {baru} foto baru diunggah untuk detail {detail_id}")
    return fotos
