"""
Konversi tree form -> baris tabel, dan tree -> data cetak yang sudah resolved.

Pilihan Selected/Override selalu ditulis sebagai teks aslinya. Field yang
nonaktif untuk jenis laporan ditulis NULL (atau [] untuk daftar).
"""
import json
from datetime import date
from typing import Optional

from errors import ValidasiError
from options import resolve
from schemas import AlatBeratItem, FotoTersimpan, Kegiatan, Laporan, MaterialItem, PenangananDetail, PeralatanItem
from variants import ReportVariant, is_active
from vocab import BULAN_INDO

KEGIATAN_TEXT_FIELDS = (
    "panjang_penanganan", "lebar_rata_rata", "rata_rata_sedimen", "volume_galian",
    "rencana_panjang", "rencana_volume", "realisasi_panjang", "realisasi_volume", "sisa_target",
)
PERSONIL_FIELDS = ("jumlah_phl", "jumlah_upt", "jumlah_p3su")
FUEL_FIELDS = ("dexlite", "pertalite", "bio_solar")


def periode_label(tanggal: Optional[date]) -> str:
    """'Maret 2025' dari sebuah tanggal."""
    if tanggal is None:
        return ""
    return f"{BULAN_INDO[tanggal.month]} {tanggal.year}"


# ===============================
# CEK BARIS KOSONG
# ===============================
def _blank(value) -> bool:
    return value is None or str(value).strip() == ""


def is_blank_material(item: MaterialItem) -> bool:
    return _blank(resolve(item.jenis)) and _blank(item.jumlah) and _blank(item.satuan)


def is_blank_peralatan(item: PeralatanItem) -> bool:
    return _blank(resolve(item.nama))


def is_blank_alat_berat(item: AlatBeratItem) -> bool:
    if not _blank(resolve(item.jenis)) or item.jumlah:
        return False
    return all(_blank(getattr(item, f"{fuel}_jumlah")) for fuel in FUEL_FIELDS)


# ===============================
# BARIS TABEL
# ===============================
def laporan_row(laporan: Laporan) -> dict:
    variant = ReportVariant(laporan.report_type)
    periode = laporan.periode.strip() or periode_label(laporan.tanggal)
    return {
        "tanggal": laporan.tanggal,
        "periode": periode,
        "report_type": variant.value,
        "user_id": laporan.user_id,
    }


def kegiatan_row(kegiatan: Kegiatan, variant, laporan_id: str, urutan: int) -> dict:
    row = {
        "laporan_id": laporan_id,
        "urutan": urutan,
        "nama_jalan": kegiatan.nama_jalan,
        "kecamatan": kegiatan.kecamatan,
        "kelurahan": kegiatan.kelurahan,
        "hari_tanggal": kegiatan.hari_tanggal,
        "koordinator": json.dumps(kegiatan.koordinator),
        "keterangan": kegiatan.keterangan,
    }
    for field in KEGIATAN_TEXT_FIELDS + PERSONIL_FIELDS:
        row[field] = getattr(kegiatan, field) if is_active(variant, "kegiatan", field) else None

    if is_active(variant, "kegiatan", "alat_yang_dibutuhkan"):
        row["alat_yang_dibutuhkan"] = json.dumps(kegiatan.alat_yang_dibutuhkan)
    else:
        row["alat_yang_dibutuhkan"] = None
    return row


def _urls(fotos) -> list:
    urls = []
    for foto in fotos:
        if not isinstance(foto, FotoTersimpan):
            raise ValidasiError("Masih ada foto yang belum diunggah")
        urls.append(foto.url)
    return urls


def detail_row(detail: PenangananDetail, variant, kegiatan_id: str, urutan: int, fotos: Optional[dict] = None) -> dict:
    """`fotos` = hasil upload per slot; None berarti kolom foto tidak ikut ditulis."""
    row = {
        "kegiatan_id": kegiatan_id,
        "urutan": urutan,
        "jenis_saluran": detail.jenis_saluran.value or None,
        "jenis_sedimen": resolve(detail.jenis_sedimen) or None,
        "aktifitas_penanganan": detail.aktifitas_penanganan,
    }
    if fotos is not None:
        row.update(foto_columns(fotos, variant))
    return row


def foto_columns(fotos: dict, variant) -> dict:
    kolom = {}
    for slot in ("foto_0", "foto_50", "foto_100", "foto_sket"):
        urls = _urls(fotos.get(slot, [])) if is_active(variant, "detail", slot) else []
        kolom[f"{slot}_url"] = json.dumps(urls)
    return kolom


def material_row(item: MaterialItem, detail_id: str, urutan: int) -> dict:
    return {
        "aktifitas_detail_id": detail_id,
        "urutan": urutan,
        "jenis": resolve(item.jenis),
        "jumlah": item.jumlah,
        "satuan": item.satuan,
        "keterangan": item.keterangan or None,
    }


def peralatan_row(item: PeralatanItem, kegiatan_id: str, urutan: int) -> dict:
    return {
        "kegiatan_id": kegiatan_id,
        "urutan": urutan,
        "nama": resolve(item.nama),
        "jumlah": item.jumlah,
        "satuan": item.satuan,
    }


def alat_berat_row(item: AlatBeratItem, kegiatan_id: str, urutan: int) -> dict:
    row = {
        "kegiatan_id": kegiatan_id,
        "urutan": urutan,
        "jenis": resolve(item.jenis),
        "jumlah": item.jumlah,
        "keterangan": item.keterangan or None,
    }
    for fuel in FUEL_FIELDS:
        row[f"{fuel}_jumlah"] = getattr(item, f"{fuel}_jumlah") or None
        row[f"{fuel}_satuan"] = getattr(item, f"{fuel}_satuan") or None
    return row


# ===============================
# DATA CETAK (UNTUK PDF)
# ===============================
def resolve_laporan(laporan: Laporan) -> dict:
    """
    Tree siap cetak: semua pilihan jadi teks, semua foto berupa URL, baris
    kosong dibuang, field nonaktif tidak disertakan. Foto yang belum
    diunggah membuat ValidasiError.
    """
    variant = ReportVariant(laporan.report_type)
    kegiatans = []
    for kegiatan in laporan.kegiatans:
        data = {
            "nama_jalan": kegiatan.nama_jalan,
            "kecamatan": kegiatan.kecamatan,
            "kelurahan": kegiatan.kelurahan,
            "hari_tanggal": kegiatan.hari_tanggal,
            "koordinator": list(kegiatan.koordinator),
            "keterangan": kegiatan.keterangan,
        }
        for field in KEGIATAN_TEXT_FIELDS + PERSONIL_FIELDS + ("alat_yang_dibutuhkan",):
            if is_active(variant, "kegiatan", field):
                data[field] = getattr(kegiatan, field)

        data["details"] = []
        for detail in kegiatan.details:
            d = {
                "jenis_saluran": detail.jenis_saluran.value,
                "jenis_sedimen": resolve(detail.jenis_sedimen),
                "aktifitas_penanganan": detail.aktifitas_penanganan,
                "materials": [
                    {k: v for k, v in material_row(m, "", 0).items() if k not in ("aktifitas_detail_id", "urutan")}
                    for m in detail.materials if not is_blank_material(m)
                ],
            }
            for slot in ("foto_0", "foto_50", "foto_100", "foto_sket"):
                if is_active(variant, "detail", slot):
                    d[slot] = _urls(getattr(detail, slot))
            data["details"].append(d)

        data["peralatans"] = [
            {"nama": resolve(p.nama), "jumlah": p.jumlah, "satuan": p.satuan}
            for p in kegiatan.peralatans if not is_blank_peralatan(p)
        ]
        data["operasional_alat_berats"] = []
        if is_active(variant, "kegiatan", "operasional_alat_berats"):
            data["operasional_alat_berats"] = [
                {k: v for k, v in alat_berat_row(a, "", 0).items() if k not in ("kegiatan_id", "urutan")}
                for a in kegiatan.operasional_alat_berats if not is_blank_alat_berat(a)
            ]
        kegiatans.append(data)

    return {
        "id": laporan.id,
        "tanggal": laporan.tanggal,
        "periode": laporan.periode.strip() or periode_label(laporan.tanggal),
        "report_type": variant.value,
        "kegiatans": kegiatans,
    }
