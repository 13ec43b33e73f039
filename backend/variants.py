from enum import Enum
from typing import Dict, List, Tuple


class ReportVariant(str, Enum):
    HARIAN = "harian"
    BULANAN = "bulanan"
    TERSIER = "tersier"


class Aturan(str, Enum):
    WAJIB = "wajib"
    OPSIONAL = "opsional"
    NONAKTIF = "nonaktif"


W, O, N = Aturan.WAJIB, Aturan.OPSIONAL, Aturan.NONAKTIF

# ===============================
# TABEL ATURAN PER JENIS LAPORAN
# (level, field) -> (harian, bulanan, tersier)
# Field yang tidak tercantum dianggap OPSIONAL di semua jenis.
# ===============================
_TABEL: Dict[Tuple[str, str], Tuple[Aturan, Aturan, Aturan]] = {
    ("laporan", "tanggal"): (W, O, W),
    ("laporan", "periode"): (O, W, O),

    ("kegiatan", "hari_tanggal"): (O, W, W),
    ("kegiatan", "panjang_penanganan"): (O, O, N),
    ("kegiatan", "lebar_rata_rata"): (O, O, N),
    ("kegiatan", "rata_rata_sedimen"): (O, O, N),
    ("kegiatan", "volume_galian"): (O, O, N),
    ("kegiatan", "rencana_panjang"): (N, N, O),
    ("kegiatan", "rencana_volume"): (N, N, O),
    ("kegiatan", "realisasi_panjang"): (N, N, O),
    ("kegiatan", "realisasi_volume"): (N, N, O),
    ("kegiatan", "sisa_target"): (N, N, O),
    ("kegiatan", "jumlah_phl"): (O, O, N),
    ("kegiatan", "jumlah_upt"): (N, O, O),
    ("kegiatan", "jumlah_p3su"): (N, O, O),
    ("kegiatan", "alat_yang_dibutuhkan"): (N, N, O),
    ("kegiatan", "operasional_alat_berats"): (O, O, N),

    ("detail", "foto_50"): (O, O, N),
    ("detail", "foto_sket"): (O, O, N),
}

_KOLOM = {ReportVariant.HARIAN: 0, ReportVariant.BULANAN: 1, ReportVariant.TERSIER: 2}

# Jumlah minimum item per koleksi (sebelum aturan NONAKTIF diterapkan)
MIN_ITEMS = {
    "kegiatans": 1,
    "details": 1,
    "materials": 1,
    "peralatans": 1,
    "operasional_alat_berats": 1,
}


def aturan(variant, level: str, field: str) -> Aturan:
    variant = ReportVariant(variant)
    baris = _TABEL.get((level, field))
    if baris is None:
        return Aturan.OPSIONAL
    return baris[_KOLOM[variant]]


def is_active(variant, level: str, field: str) -> bool:
    return aturan(variant, level, field) != Aturan.NONAKTIF


def min_items(variant, collection: str) -> int:
    """Jumlah minimum item koleksi; koleksi yang nonaktif boleh kosong."""
    if not is_active(variant, "kegiatan", collection):
        return 0
    return MIN_ITEMS.get(collection, 0)


def computes_volume(variant) -> bool:
    # Tersier mengisi rencana/realisasi volume langsung, tanpa hitung otomatis
    return is_active(variant, "kegiatan", "volume_galian")


def _kosong(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def check_laporan(laporan) -> List[str]:
    """Mengembalikan daftar pesan untuk field WAJIB yang masih kosong."""
    variant = laporan.report_type
    masalah = []

    if aturan(variant, "laporan", "tanggal") == Aturan.WAJIB and laporan.tanggal is None:
        masalah.append("Mohon isi tanggal laporan.")

    if aturan(variant, "laporan", "periode") == Aturan.WAJIB:
        if _kosong(laporan.periode) and laporan.tanggal is None:
            masalah.append("Mohon isi periode laporan.")

    for i, kegiatan in enumerate(laporan.kegiatans, start=1):
        for (level, field), _ in _TABEL.items():
            if level != "kegiatan" or aturan(variant, level, field) != Aturan.WAJIB:
                continue
            if _kosong(getattr(kegiatan, field, None)):
                masalah.append(f"Kegiatan {i}: field '{field}' wajib diisi.")

    return masalah
