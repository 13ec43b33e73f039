"""
Simpan tree laporan ke database (insert / update / delete per level).

Urutan kerja:
1. Laporan di-upsert lalu di-commit.
2. Setiap kegiatan beserta seluruh anaknya (detail, material, peralatan,
   alat berat, upload foto) ditulis dalam satu transaksi. Gagal -> rollback
   kegiatan itu saja, kegiatan sebelumnya tetap tersimpan, proses berhenti.
3. Kegiatan yang tidak ada lagi di tree dihapus (anak dulu, baru induk).

Tidak ada retry; setiap kegagalan langsung dikembalikan ke pemanggil bersama
id laporan dan tree sebagian yang sudah tersimpan.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Set

from sqlalchemy.ext.asyncio import AsyncSession

import store
from errors import LaporanError, LoadError, ValidasiError
from media import SLOT_NAMES, upload_detail_photos
from models import (
    AktifitasPenangananDetail,
    KegiatanDrainase,
    LaporanDrainase,
    MaterialKegiatan,
    OperasionalAlatBeratKegiatan,
    PeralatanKegiatan,
)
from schemas import Kegiatan, Laporan, PenangananDetail
from serializer import (
    alat_berat_row,
    detail_row,
    foto_columns,
    is_blank_alat_berat,
    is_blank_material,
    is_blank_peralatan,
    kegiatan_row,
    laporan_row,
    material_row,
    peralatan_row,
)
from variants import ReportVariant, check_laporan, is_active

logger = logging.getLogger(__name__)


@dataclass
class Statistik:
    """Jumlah operasi per level dalam satu kali simpan (untuk log)."""
    insert: dict = field(default_factory=dict)
    update: dict = field(default_factory=dict)
    delete: dict = field(default_factory=dict)

    def catat(self, jenis: str, level: str, n: int = 1):
        bucket = getattr(self, jenis)
        bucket[level] = bucket.get(level, 0) + n


# ===============================
# ENTRY POINT SIMPAN
# ===============================
async def save_laporan(db: AsyncSession, laporan: Laporan, storage):
    """
    Simpan seluruh tree. Mengembalikan (laporan_id, tree baru) di mana semua
    baris yang tersimpan sudah punya id dan semua foto berupa URL.

    Bila gagal setelah laporan ter-commit, error membawa `laporan_id` dan
    `laporan` (tree sebagian); tree itu yang dikirim ulang agar simpan
    berikutnya meng-update, bukan membuat laporan baru.
    """
    masalah = check_laporan(laporan)
    if masalah:
        raise ValidasiError(" ".join(masalah))

    variant = ReportVariant(laporan.report_type)
    stat = Statistik()

    # 1. LAPORAN
    try:
        row = laporan_row(laporan)
        if laporan.id and await store.exists(db, LaporanDrainase, laporan.id):
            await store.update_row(db, LaporanDrainase, laporan.id, row)
            laporan_id = laporan.id
            stat.catat("update", "laporan")
        else:
            laporan_id = await store.insert(db, LaporanDrainase, row)
            stat.catat("insert", "laporan")
        existing_kegiatan = await store.select_ids(db, KegiatanDrainase, "laporan_id", laporan_id)
        await store.commit(db, LaporanDrainase.__tablename__)
    except Exception:
        await db.rollback()
        raise

    # 2. KEGIATAN (SATU TRANSAKSI PER KEGIATAN)
    keep: Set[str] = set()
    kegiatans: List[Kegiatan] = []
    for urutan, kegiatan in enumerate(laporan.kegiatans):
        try:
            tersimpan = await _sync_kegiatan(
                db, storage, variant, laporan_id, kegiatan, urutan, existing_kegiatan, stat
            )
            await store.commit(db, KegiatanDrainase.__tablename__)
        except LaporanError as e:
            await db.rollback()
            logger.error(f"Simpan kegiatan ke-{urutan + 1} laporan {laporan_id} gagal, proses dihentikan")
            e.laporan_id = laporan_id
            e.laporan = _tree_tersimpan(laporan, laporan_id, kegiatans)
            raise
        except Exception:
            await db.rollback()
            raise
        keep.add(tersimpan.id)
        kegiatans.append(tersimpan)

    # 3. HAPUS KEGIATAN YATIM
    orphans = existing_kegiatan - keep
    if orphans:
        try:
            await hapus_kegiatans(db, orphans, stat)
            await store.commit(db, KegiatanDrainase.__tablename__)
        except LaporanError as e:
            await db.rollback()
            e.laporan_id = laporan_id
            e.laporan = _tree_tersimpan(laporan, laporan_id, kegiatans)
            raise
        except Exception:
            await db.rollback()
            raise

    logger.info(
        f"Laporan {laporan_id} ({variant.value}) disimpan: "
        f"insert={stat.insert} update={stat.update} delete={stat.delete}"
    )

    return laporan_id, _tree_tersimpan(laporan, laporan_id, kegiatans)


def _tree_tersimpan(laporan: Laporan, laporan_id: str, kegiatans: List[Kegiatan]) -> Laporan:
    # Kegiatan yang belum sempat disimpan ikut apa adanya di belakang
    hasil = laporan.model_copy()
    hasil.id = laporan_id
    hasil.periode = laporan_row(laporan)["periode"]
    hasil.kegiatans = list(kegiatans) + list(laporan.kegiatans[len(kegiatans):])
    return hasil


# ===============================
# LEVEL KEGIATAN
# ===============================
async def _sync_kegiatan(db, storage, variant, laporan_id, kegiatan: Kegiatan, urutan, existing_ids, stat) -> Kegiatan:
    row = kegiatan_row(kegiatan, variant, laporan_id, urutan)
    if kegiatan.id and kegiatan.id in existing_ids:
        kegiatan_id = kegiatan.id
        await store.update_row(db, KegiatanDrainase, kegiatan_id, row)
        stat.catat("update", "kegiatan")
        existing_details = await store.select_ids(db, AktifitasPenangananDetail, "kegiatan_id", kegiatan_id)
    else:
        kegiatan_id = await store.insert(db, KegiatanDrainase, row)
        stat.catat("insert", "kegiatan")
        existing_details = set()

    # Detail + material
    keep: Set[str] = set()
    details = []
    for i, detail in enumerate(kegiatan.details):
        tersimpan = await _sync_detail(
            db, storage, variant, laporan_id, kegiatan_id, detail, i, existing_details, stat
        )
        keep.add(tersimpan.id)
        details.append(tersimpan)

    orphan_details = existing_details - keep
    if orphan_details:
        # Material dihapus dulu, tidak mengandalkan ON DELETE CASCADE
        n = await store.delete_by_parent(db, MaterialKegiatan, "aktifitas_detail_id", orphan_details)
        stat.catat("delete", "material", n)
        n = await store.delete_ids(db, AktifitasPenangananDetail, orphan_details, "kegiatan_id", kegiatan_id)
        stat.catat("delete", "detail", n)

    # Peralatan: hapus semua lalu insert ulang
    n = await store.delete_by_parent(db, PeralatanKegiatan, "kegiatan_id", [kegiatan_id])
    stat.catat("delete", "peralatan", n)
    peralatans = []
    posisi = 0
    for item in kegiatan.peralatans:
        if is_blank_peralatan(item):
            peralatans.append(item.model_copy(update={"id": None}))
            continue
        new_id = await store.insert(db, PeralatanKegiatan, peralatan_row(item, kegiatan_id, posisi))
        stat.catat("insert", "peralatan")
        posisi += 1
        peralatans.append(item.model_copy(update={"id": new_id}))

    # Alat berat: sama seperti peralatan; untuk tersier tidak ada yang ditulis
    n = await store.delete_by_parent(db, OperasionalAlatBeratKegiatan, "kegiatan_id", [kegiatan_id])
    stat.catat("delete", "alat_berat", n)
    alat_berats = []
    aktif = is_active(variant, "kegiatan", "operasional_alat_berats")
    posisi = 0
    for item in kegiatan.operasional_alat_berats:
        if not aktif or is_blank_alat_berat(item):
            alat_berats.append(item.model_copy(update={"id": None}))
            continue
        new_id = await store.insert(db, OperasionalAlatBeratKegiatan, alat_berat_row(item, kegiatan_id, posisi))
        stat.catat("insert", "alat_berat")
        posisi += 1
        alat_berats.append(item.model_copy(update={"id": new_id}))

    return kegiatan.model_copy(update={
        "id": kegiatan_id,
        "details": details,
        "peralatans": peralatans,
        "operasional_alat_berats": alat_berats,
    })


# ===============================
# LEVEL DETAIL + MATERIAL
# ===============================
async def _sync_detail(db, storage, variant, laporan_id, kegiatan_id, detail: PenangananDetail, urutan,
                       existing_ids, stat) -> PenangananDetail:
    if detail.id and detail.id in existing_ids:
        detail_id = detail.id
        fotos = await upload_detail_photos(storage, laporan_id, kegiatan_id, detail_id, detail, variant)
        await store.update_row(db, AktifitasPenangananDetail, detail_id,
                               detail_row(detail, variant, kegiatan_id, urutan, fotos))
        stat.catat("update", "detail")
        existing_materials = await store.select_ids(db, MaterialKegiatan, "aktifitas_detail_id", detail_id)
    else:
        # Id detail dibutuhkan untuk path foto, jadi insert dulu tanpa foto
        detail_id = await store.insert(db, AktifitasPenangananDetail,
                                       detail_row(detail, variant, kegiatan_id, urutan))
        stat.catat("insert", "detail")
        fotos = await upload_detail_photos(storage, laporan_id, kegiatan_id, detail_id, detail, variant)
        await store.update_row(db, AktifitasPenangananDetail, detail_id, foto_columns(fotos, variant))
        existing_materials = set()

    keep: Set[str] = set()
    materials = []
    posisi = 0
    for item in detail.materials:
        if is_blank_material(item):
            materials.append(item.model_copy(update={"id": None}))
            continue
        row = material_row(item, detail_id, posisi)
        posisi += 1
        if item.id and item.id in existing_materials:
            await store.update_row(db, MaterialKegiatan, item.id, row)
            stat.catat("update", "material")
            material_id = item.id
        else:
            material_id = await store.insert(db, MaterialKegiatan, row)
            stat.catat("insert", "material")
        keep.add(material_id)
        materials.append(item.model_copy(update={"id": material_id}))

    n = await store.delete_ids(db, MaterialKegiatan, existing_materials - keep, "aktifitas_detail_id", detail_id)
    stat.catat("delete", "material", n)

    update = {"id": detail_id, "materials": materials}
    for slot in SLOT_NAMES:
        if is_active(variant, "detail", slot):
            update[slot] = fotos[slot]
    return detail.model_copy(update=update)


# ===============================
# HAPUS (ANAK DULU, BARU INDUK)
# ===============================
async def hapus_kegiatans(db: AsyncSession, kegiatan_ids: Iterable[str], stat: Statistik = None):
    stat = stat or Statistik()
    kegiatan_ids = list(kegiatan_ids)
    detail_ids = set()
    for kegiatan_id in kegiatan_ids:
        detail_ids |= await store.select_ids(db, AktifitasPenangananDetail, "kegiatan_id", kegiatan_id)

    stat.catat("delete", "material",
               await store.delete_by_parent(db, MaterialKegiatan, "aktifitas_detail_id", detail_ids))
    stat.catat("delete", "detail",
               await store.delete_by_parent(db, AktifitasPenangananDetail, "kegiatan_id", kegiatan_ids))
    stat.catat("delete", "peralatan",
               await store.delete_by_parent(db, PeralatanKegiatan, "kegiatan_id", kegiatan_ids))
    stat.catat("delete", "alat_berat",
               await store.delete_by_parent(db, OperasionalAlatBeratKegiatan, "kegiatan_id", kegiatan_ids))
    stat.catat("delete", "kegiatan", await store.delete_ids(db, KegiatanDrainase, kegiatan_ids))
    return stat


async def delete_laporan(db: AsyncSession, laporan_id: str):
    if not await store.exists(db, LaporanDrainase, laporan_id):
        raise LoadError(f"Laporan {laporan_id} tidak ditemukan")
    try:
        kegiatan_ids = await store.select_ids(db, KegiatanDrainase, "laporan_id", laporan_id)
        stat = await hapus_kegiatans(db, kegiatan_ids)
        await store.delete_ids(db, LaporanDrainase, [laporan_id])
        await store.commit(db, LaporanDrainase.__tablename__)
    except Exception:
        await db.rollback()
        raise
    logger.info(f"Laporan {laporan_id} dihapus: {stat.delete}")
