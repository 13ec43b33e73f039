"""
Operasi struktural pada tree form laporan.

Semua fungsi mengembalikan objek Laporan BARU; objek lama tidak pernah
diubah, sehingga UI cukup membandingkan referensi untuk render ulang.

Path adalah urutan segmen, misalnya::

    ("kegiatans", "kegiatan-3f..", "details", 0, "materials", "material-9a..", "jumlah")

Segmen setelah nama koleksi boleh berupa `key` item (str) atau index (int).
"""
import logging
from datetime import date
from typing import Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from errors import MinimumItemError, ValidasiError
from options import material_unit
from schemas import (
    AlatBeratItem,
    Foto,
    Kegiatan,
    Laporan,
    MaterialItem,
    PenangananDetail,
    PeralatanItem,
)
from variants import ReportVariant, computes_volume, min_items
from volume import VOLUME_INPUTS, recompute_volume

logger = logging.getLogger(__name__)

CHILD_COLLECTIONS = {
    Laporan: {"kegiatans": Kegiatan},
    Kegiatan: {
        "details": PenangananDetail,
        "peralatans": PeralatanItem,
        "operasional_alat_berats": AlatBeratItem,
    },
    PenangananDetail: {"materials": MaterialItem},
}

PHOTO_SLOTS = ("foto_0", "foto_50", "foto_100", "foto_sket")

READONLY_FIELDS = {"key", "id", "volume_otomatis"}

PESAN_MINIMUM = {
    "kegiatans": "Laporan harus memiliki minimal satu kegiatan.",
    "details": "Kegiatan harus memiliki minimal satu aktifitas penanganan.",
    "materials": "Aktifitas penanganan harus memiliki minimal satu material.",
    "peralatans": "Kegiatan harus memiliki minimal satu peralatan.",
    "operasional_alat_berats": "Kegiatan harus memiliki minimal satu operasional alat berat.",
}

_foto_adapter = TypeAdapter(Foto)


# ===============================
# PEMBUATAN TREE BARU
# ===============================
def new_laporan(report_type=ReportVariant.HARIAN, tanggal: Optional[date] = None) -> Laporan:
    return Laporan(report_type=ReportVariant(report_type), tanggal=tanggal, kegiatans=[Kegiatan()])


def _new_child(cls, value):
    if value is None:
        return cls()
    try:
        child = cls.model_validate(value)
    except ValidationError as e:
        raise ValidasiError(f"Data {cls.__name__} tidak valid: {e}") from e
    # Item baru selalu mendapat key baru dan belum punya id database
    return child.model_copy(update={"key": cls.model_fields["key"].default_factory(), "id": None})


# ===============================
# NAVIGASI PATH
# ===============================
def _norm_path(path) -> tuple:
    if isinstance(path, (str, int)):
        path = (path,)
    path = tuple(path)
    if not path:
        raise ValidasiError("Path tidak boleh kosong")
    return path


def _child_list(node, field, full_path):
    if field not in CHILD_COLLECTIONS.get(type(node), {}):
        raise ValidasiError(f"'{field}' bukan koleksi pada {type(node).__name__}", full_path)
    return getattr(node, field)


def _find_index(items, seg, full_path) -> int:
    if isinstance(seg, int) and not isinstance(seg, bool):
        if 0 <= seg < len(items):
            return seg
    else:
        for i, item in enumerate(items):
            if getattr(item, "key", None) == seg:
                return i
    raise ValidasiError(f"Item '{seg}' tidak ditemukan", full_path)


def _rebuild(node, path, edit, full_path):
    """Turun sepanjang path, jalankan `edit(owner, tail)` di ujungnya, lalu salin ulang ke atas."""
    if len(path) <= 2:
        return edit(node, path)

    field, seg, rest = path[0], path[1], path[2:]
    items = _child_list(node, field, full_path)
    idx = _find_index(items, seg, full_path)

    new_items = list(items)
    new_items[idx] = _rebuild(items[idx], rest, edit, full_path)

    updated = node.model_copy()
    setattr(updated, field, new_items)
    return updated


def get_at(laporan: Laporan, path: Sequence):
    full_path = _norm_path(path)
    node = laporan
    path = list(full_path)
    while path:
        field = path.pop(0)
        if field in CHILD_COLLECTIONS.get(type(node), {}) or field in PHOTO_SLOTS:
            items = getattr(node, field)
            if not path:
                return items
            node = items[_find_index(items, path.pop(0), full_path)]
        elif field in type(node).model_fields:
            if path:
                raise ValidasiError(f"'{field}' bukan koleksi", full_path)
            return getattr(node, field)
        else:
            raise ValidasiError(f"Field '{field}' tidak dikenal", full_path)
    return node


# ===============================
# SET FIELD
# ===============================
def set_field(laporan: Laporan, path: Sequence, value) -> Laporan:
    full_path = _norm_path(path)

    if full_path == ("report_type",):
        try:
            variant = ReportVariant(value)
        except ValueError as e:
            raise ValidasiError(f"Jenis laporan '{value}' tidak dikenal", full_path) from e
    else:
        variant = laporan.report_type

    def edit(owner, tail):
        if len(tail) != 1:
            raise ValidasiError("Path harus menunjuk ke sebuah field", full_path)
        field = tail[0]

        if field not in type(owner).model_fields:
            raise ValidasiError(f"Field '{field}' tidak dikenal pada {type(owner).__name__}", full_path)
        if field in READONLY_FIELDS:
            raise ValidasiError(f"Field '{field}' tidak boleh diubah langsung", full_path)
        if field in CHILD_COLLECTIONS.get(type(owner), {}):
            raise ValidasiError(f"Gunakan tambah/hapus item untuk koleksi '{field}'", full_path)

        updated = owner.model_copy()
        try:
            setattr(updated, field, value)
        except ValidationError as e:
            raise ValidasiError(f"Nilai '{field}' tidak valid: {e.errors()[0]['msg']}", full_path) from e

        if isinstance(owner, Kegiatan):
            if field in VOLUME_INPUTS and computes_volume(variant):
                updated = recompute_volume(updated)
            if field == "kecamatan" and updated.kecamatan != owner.kecamatan:
                # Daftar kelurahan bergantung pada kecamatan
                updated.kelurahan = ""

        if isinstance(owner, MaterialItem) and field == "jenis":
            unit = material_unit(updated.jenis)
            if unit:
                updated.satuan = unit

        return updated

    return _rebuild(laporan, full_path, edit, full_path)


# ===============================
# ADD CHILD
# ===============================
def add_child(laporan: Laporan, parent_path: Sequence, value=None) -> Laporan:
    """
    Tambah item di akhir koleksi. Untuk slot foto `value` wajib diisi
    (FotoBaru / FotoTersimpan / URL string).
    """
    full_path = _norm_path(parent_path)

    def edit(owner, tail):
        if len(tail) != 1:
            raise ValidasiError("Path harus menunjuk ke sebuah koleksi", full_path)
        field = tail[0]
        children = CHILD_COLLECTIONS.get(type(owner), {})

        if field in children:
            new_item = _new_child(children[field], value)
        elif field in PHOTO_SLOTS and isinstance(owner, PenangananDetail):
            if value is None:
                raise ValidasiError("Foto yang ditambahkan tidak boleh kosong", full_path)
            try:
                new_item = _foto_adapter.validate_python(value)
            except ValidationError as e:
                raise ValidasiError(f"Foto tidak valid: {e.errors()[0]['msg']}", full_path) from e
        else:
            raise ValidasiError(f"'{field}' bukan koleksi pada {type(owner).__name__}", full_path)

        updated = owner.model_copy()
        setattr(updated, field, list(getattr(owner, field)) + [new_item])
        return updated

    return _rebuild(laporan, full_path, edit, full_path)


# ===============================
# REMOVE CHILD
# ===============================
def remove_child(laporan: Laporan, path: Sequence) -> Laporan:
    """
    Hapus satu item. Menghapus item terakhir dari koleksi yang punya jumlah
    minimum ditolak dengan MinimumItemError; tree tidak berubah.
    """
    full_path = _norm_path(path)
    variant = laporan.report_type

    def edit(owner, tail):
        if len(tail) != 2:
            raise ValidasiError("Path harus menunjuk ke sebuah item", full_path)
        field, seg = tail

        if field in CHILD_COLLECTIONS.get(type(owner), {}):
            items = getattr(owner, field)
            idx = _find_index(items, seg, full_path)
            if len(items) <= min_items(variant, field):
                logger.info(f"Hapus {field} ditolak: sisa {len(items)} item")
                raise MinimumItemError(PESAN_MINIMUM[field], full_path)
        elif field in PHOTO_SLOTS and isinstance(owner, PenangananDetail):
            items = getattr(owner, field)
            if not isinstance(seg, int) or isinstance(seg, bool) or not 0 <= seg < len(items):
                raise ValidasiError("Index foto tidak valid", full_path)
            idx = seg
        else:
            raise ValidasiError(f"'{field}' bukan koleksi pada {type(owner).__name__}", full_path)

        updated = owner.model_copy()
        setattr(updated, field, [item for i, item in enumerate(items) if i != idx])
        return updated

    return _rebuild(laporan, full_path, edit, full_path)


def apply_mutation(laporan: Laporan, op: str, path: Sequence, value=None) -> Laporan:
    if op == "set":
        return set_field(laporan, path, value)
    if op == "add":
        return add_child(laporan, path, value)
    if op == "remove":
        return remove_child(laporan, path)
    raise ValidasiError(f"Operasi '{op}' tidak dikenal")
