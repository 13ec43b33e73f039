import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

VOLUME_INPUTS = ("panjang_penanganan", "lebar_rata_rata", "rata_rata_sedimen")


def parse_angka(val) -> Decimal:
    """
    Angka dari isian form. Koma diterima sebagai pemisah desimal ("2,5").
    Isian kosong atau bukan angka dianggap 0, tidak pernah error.
    """
    if val is None:
        return Decimal(0)
    text = str(val).strip().replace(" ", "").replace(",", ".")
    if not text:
        return Decimal(0)
    try:
        angka = Decimal(text)
    except InvalidOperation:
        return Decimal(0)
    if not angka.is_finite():
        return Decimal(0)
    return angka


def hitung_volume(panjang, lebar, tinggi) -> str:
    """Volume galian = panjang x lebar x tinggi sedimen, dibulatkan 2 desimal."""
    volume = parse_angka(panjang) * parse_angka(lebar) * parse_angka(tinggi)
    return str(volume.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def volume_for(kegiatan) -> str:
    # Semua input kosong -> volume ikut kosong (bukan "0.00")
    if all(not str(getattr(kegiatan, f) or "").strip() for f in VOLUME_INPUTS):
        return ""
    return hitung_volume(*(getattr(kegiatan, f) for f in VOLUME_INPUTS))


def recompute_volume(kegiatan):
    """
    Hitung ulang volume galian satu kegiatan setelah salah satu input berubah.

    Volume hanya ditimpa kalau masih kosong atau masih sama dengan nilai
    terakhir yang dihitung otomatis untuk kegiatan ini. Kalau pengguna sudah
    mengetik nilai sendiri, nilai itu dipertahankan sampai dikosongkan lagi.
    """
    current = kegiatan.volume_galian or ""
    if current and current != kegiatan.volume_otomatis:
        logger.debug(f"Volume kegiatan {kegiatan.key} diisi manual ({current}), tidak dihitung ulang")
        return kegiatan

    computed = volume_for(kegiatan)
    updated = kegiatan.model_copy()
    updated.volume_galian = computed
    updated.volume_otomatis = computed
    return updated


def remember_loaded_volume(kegiatan):
    """
    Setelah dimuat dari database: kalau volume tersimpan sama dengan hasil
    hitungan dari input tersimpan, anggap volume itu hasil otomatis.
    """
    computed = volume_for(kegiatan)
    updated = kegiatan.model_copy()
    updated.volume_otomatis = computed if kegiatan.volume_galian == computed else None
    return updated
