"""
Muat laporan tersimpan menjadi tree form.

Urutan anak diambil dari kolom `urutan`, lalu `created_at`. Koleksi yang
kosong di database diisi satu baris kosong supaya form tetap bisa diisi.
Kalau terjadi kegagalan apa pun, tidak ada tree parsial yang dikembalikan.
"""
import json
import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import LoadError
from models import (
    AktifitasPenangananDetail,
    KegiatanDrainase,
    LaporanDrainase,
    MaterialKegiatan,
    OperasionalAlatBeratKegiatan,
    PeralatanKegiatan,
)
from options import OptionFamily, classify
from schemas import (
    AlatBeratItem,
    Kegiatan,
    Laporan,
    LaporanRingkas,
    MaterialItem,
    PenangananDetail,
    PeralatanItem,
)
from volume import remember_loaded_volume

logger = logging.getLogger(__name__)


def _json_list(raw) -> list:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Kolom JSON tidak valid, dianggap kosong: {raw!r}")
        return []
    return data if isinstance(data, list) else []


async def _children(db, model, parent_col, parent_id):
    stmt = (
        select(model)
        .where(getattr(model, parent_col) == parent_id)
        .order_by(model.urutan, model.created_at)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


def _material(row) -> MaterialItem:
    return MaterialItem(
        key=row.id,
        id=row.id,
        jenis=classify(OptionFamily.MATERIAL, row.jenis),
        jumlah=row.jumlah or "",
        satuan=row.satuan or "",
        keterangan=row.keterangan or "",
    )


def _peralatan(row) -> PeralatanItem:
    return PeralatanItem(
        key=row.id,
        id=row.id,
        nama=classify(OptionFamily.PERALATAN, row.nama),
        jumlah=max(row.jumlah or 1, 1),
        satuan=row.satuan or "Unit",
    )


def _alat_berat(row) -> AlatBeratItem:
    data = {
        "key": row.id,
        "id": row.id,
        "jenis": classify(OptionFamily.ALAT_BERAT, row.jenis),
        "jumlah": row.jumlah or 0,
        "keterangan": row.keterangan or "",
    }
    for fuel in ("dexlite", "pertalite", "bio_solar"):
        data[f"{fuel}_jumlah"] = getattr(row, f"{fuel}_jumlah") or ""
        data[f"{fuel}_satuan"] = getattr(row, f"{fuel}_satuan") or "Liter"
    return AlatBeratItem(**data)


async def _detail(db, row) -> PenangananDetail:
    materials = [_material(m) for m in await _children(db, MaterialKegiatan, "aktifitas_detail_id", row.id)]
    return PenangananDetail(
        key=row.id,
        id=row.id,
        jenis_saluran=row.jenis_saluran or "",
        jenis_sedimen=classify(OptionFamily.SEDIMEN, row.jenis_sedimen),
        aktifitas_penanganan=row.aktifitas_penanganan or "",
        foto_0=_json_list(row.foto_0_url),
        foto_50=_json_list(row.foto_50_url),
        foto_100=_json_list(row.foto_100_url),
        foto_sket=_json_list(row.foto_sket_url),
        materials=materials or [MaterialItem()],
    )


async def _kegiatan(db, row) -> Kegiatan:
    details = [await _detail(db, d) for d in await _children(db, AktifitasPenangananDetail, "kegiatan_id", row.id)]
    peralatans = [_peralatan(p) for p in await _children(db, PeralatanKegiatan, "kegiatan_id", row.id)]
    alat_berats = [_alat_berat(a) for a in await _children(db, OperasionalAlatBeratKegiatan, "kegiatan_id", row.id)]

    kegiatan = Kegiatan(
        key=row.id,
        id=row.id,
        nama_jalan=row.nama_jalan or "",
        kecamatan=row.kecamatan or "",
        kelurahan=row.kelurahan or "",
        hari_tanggal=row.hari_tanggal,
        panjang_penanganan=row.panjang_penanganan or "",
        lebar_rata_rata=row.lebar_rata_rata or "",
        rata_rata_sedimen=row.rata_rata_sedimen or "",
        volume_galian=row.volume_galian or "",
        rencana_panjang=row.rencana_panjang or "",
        rencana_volume=row.rencana_volume or "",
        realisasi_panjang=row.realisasi_panjang or "",
        realisasi_volume=row.realisasi_volume or "",
        sisa_target=row.sisa_target or "",
        alat_yang_dibutuhkan=_json_list(row.alat_yang_dibutuhkan),
        koordinator=_json_list(row.koordinator),
        jumlah_phl=row.jumlah_phl or 0,
        jumlah_upt=row.jumlah_upt or 0,
        jumlah_p3su=row.jumlah_p3su or 0,
        keterangan=row.keterangan or "",
        details=details or [PenangananDetail()],
        peralatans=peralatans or [PeralatanItem()],
        operasional_alat_berats=alat_berats or [AlatBeratItem()],
    )
    return remember_loaded_volume(kegiatan)


async def load_laporan(db: AsyncSession, laporan_id: str) -> Laporan:
    try:
        laporan_row = await db.get(LaporanDrainase, laporan_id)
        if laporan_row is None:
            raise LoadError(f"Laporan {laporan_id} tidak ditemukan")
        kegiatans = [await _kegiatan(db, k) for k in await _children(db, KegiatanDrainase, "laporan_id", laporan_id)]
        laporan = Laporan(
            id=laporan_row.id,
            tanggal=laporan_row.tanggal,
            periode=laporan_row.periode or "",
            report_type=laporan_row.report_type,
            user_id=laporan_row.user_id,
            kegiatans=kegiatans or [Kegiatan()],
        )
    except LoadError:
        raise
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"Gagal memuat laporan {laporan_id}: {e}")
        raise LoadError(f"Gagal memuat laporan {laporan_id}: {e}") from e

    logger.info(f"Laporan {laporan_id} dimuat: {len(kegiatans)} kegiatan")
    return laporan


async def list_laporan(db: AsyncSession) -> List[LaporanRingkas]:
    """Daftar laporan, terbaru dulu."""
    try:
        result = await db.execute(
            select(LaporanDrainase).order_by(LaporanDrainase.created_at.desc())
        )
        laporans = result.scalars().all()

        counts = await db.execute(
            select(KegiatanDrainase.laporan_id, func.count(KegiatanDrainase.id))
            .group_by(KegiatanDrainase.laporan_id)
        )
        jumlah = dict(counts.all())

        jalan = await db.execute(
            select(KegiatanDrainase.laporan_id, KegiatanDrainase.nama_jalan)
            .order_by(KegiatanDrainase.urutan)
        )
        nama_jalan = {}
        for laporan_id, nama in jalan.all():
            if nama:
                nama_jalan.setdefault(laporan_id, []).append(nama)
    except SQLAlchemyError as e:
        raise LoadError(f"Gagal memuat daftar laporan: {e}") from e

    return [
        LaporanRingkas(
            id=row.id,
            tanggal=row.tanggal,
            periode=row.periode or "",
            report_type=row.report_type,
            jumlah_kegiatan=jumlah.get(row.id, 0),
            nama_jalan=nama_jalan.get(row.id, []),
        )
        for row in laporans
    ]
