# ======================== SKEMA FORM LAPORAN (ENTITY TREE) ========================
# Laporan -> Kegiatan -> Aktifitas Penanganan (detail) -> Material
#                     -> Peralatan
#                     -> Operasional Alat Berat
#
# `key` adalah kunci UI (unik di dalam koleksi induknya, tidak pernah dipakai ulang).
# `id` adalah id dari database; None berarti baris baru yang belum pernah disimpan.
import base64
import uuid
from datetime import date
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer, field_validator

from options import AlatBeratChoice, MaterialChoice, PeralatanChoice, SedimenChoice, Unset
from variants import ReportVariant


def new_key(prefix: str = "item") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class FormModel(BaseModel):
    model_config = ConfigDict(validate_assignment=True, coerce_numbers_to_str=True)


# ===============================
# FOTO
# ===============================
class FotoTersimpan(BaseModel):
    """Referensi foto yang sudah ada di object storage."""
    kind: Literal["stored"] = "stored"
    url: str


class FotoBaru(BaseModel):
    """Lampiran lokal yang belum diunggah."""
    kind: Literal["pending"] = "pending"
    filename: str
    content_type: str = "image/jpeg"
    data: bytes

    @field_validator("data", mode="before")
    @classmethod
    def decode_base64(cls, value):
        # Dari JSON, isi file dikirim sebagai base64
        if isinstance(value, str):
            return base64.b64decode(value)
        return value

    @field_serializer("data", when_used="json")
    def encode_base64(self, value: bytes) -> str:
        return base64.b64encode(value).decode("utf-8")


def _coerce_foto(value):
    # URL lama yang tersimpan sebagai string biasa
    if isinstance(value, str):
        return FotoTersimpan(url=value)
    return value


Foto = Annotated[Union[FotoTersimpan, FotoBaru], BeforeValidator(_coerce_foto)]


class JenisSaluran(str, Enum):
    TERBUKA = "Terbuka"
    TERTUTUP = "Tertutup"
    TERBUKA_TERTUTUP = "Terbuka & Tertutup"
    KOSONG = ""


# ===============================
# ITEM BARIS (LINE ITEMS)
# ===============================
class MaterialItem(FormModel):
    key: str = Field(default_factory=lambda: new_key("material"))
    id: Optional[str] = None
    jenis: MaterialChoice = Field(default_factory=Unset)
    jumlah: str = ""
    satuan: str = ""
    keterangan: str = ""


class PeralatanItem(FormModel):
    key: str = Field(default_factory=lambda: new_key("peralatan"))
    id: Optional[str] = None
    nama: PeralatanChoice = Field(default_factory=Unset)
    jumlah: int = Field(default=1, ge=1)
    satuan: str = "Unit"


class AlatBeratItem(FormModel):
    key: str = Field(default_factory=lambda: new_key("alat-berat"))
    id: Optional[str] = None
    jenis: AlatBeratChoice = Field(default_factory=Unset)
    jumlah: int = Field(default=0, ge=0)
    dexlite_jumlah: str = ""
    dexlite_satuan: str = "Liter"
    pertalite_jumlah: str = ""
    pertalite_satuan: str = "Liter"
    bio_solar_jumlah: str = ""
    bio_solar_satuan: str = "Liter"
    keterangan: str = ""


# ===============================
# AKTIFITAS PENANGANAN
# ===============================
class PenangananDetail(FormModel):
    key: str = Field(default_factory=lambda: new_key("detail"))
    id: Optional[str] = None
    jenis_saluran: JenisSaluran = JenisSaluran.KOSONG
    jenis_sedimen: SedimenChoice = Field(default_factory=Unset)
    aktifitas_penanganan: str = ""
    foto_0: List[Foto] = Field(default_factory=list)
    foto_50: List[Foto] = Field(default_factory=list)
    foto_100: List[Foto] = Field(default_factory=list)
    foto_sket: List[Foto] = Field(default_factory=list)
    materials: List[MaterialItem] = Field(default_factory=lambda: [MaterialItem()])


# ===============================
# KEGIATAN (SITE)
# ===============================
class Kegiatan(FormModel):
    key: str = Field(default_factory=lambda: new_key("kegiatan"))
    id: Optional[str] = None
    nama_jalan: str = ""
    kecamatan: str = ""
    kelurahan: str = ""
    hari_tanggal: Optional[date] = None

    # Harian / bulanan
    panjang_penanganan: str = ""
    lebar_rata_rata: str = ""
    rata_rata_sedimen: str = ""
    volume_galian: str = ""
    # Nilai volume terakhir yang dihitung otomatis (tidak disimpan ke database)
    volume_otomatis: Optional[str] = None

    # Tersier
    rencana_panjang: str = ""
    rencana_volume: str = ""
    realisasi_panjang: str = ""
    realisasi_volume: str = ""
    sisa_target: str = ""
    alat_yang_dibutuhkan: List[str] = Field(default_factory=list)

    koordinator: List[str] = Field(default_factory=list)
    jumlah_phl: int = Field(default=0, ge=0)
    jumlah_upt: int = Field(default=0, ge=0)
    jumlah_p3su: int = Field(default=0, ge=0)
    keterangan: str = ""

    details: List[PenangananDetail] = Field(default_factory=lambda: [PenangananDetail()])
    peralatans: List[PeralatanItem] = Field(default_factory=lambda: [PeralatanItem()])
    operasional_alat_berats: List[AlatBeratItem] = Field(default_factory=lambda: [AlatBeratItem()])

    @field_validator("koordinator")
    @classmethod
    def unique_koordinator(cls, value):
        # Koordinator adalah himpunan; urutan tidak berarti
        return list(dict.fromkeys(value))


# ===============================
# LAPORAN (REPORT)
# ===============================
class Laporan(FormModel):
    id: Optional[str] = None
    tanggal: Optional[date] = None
    periode: str = ""
    report_type: ReportVariant = ReportVariant.HARIAN
    user_id: Optional[str] = None
    kegiatans: List[Kegiatan] = Field(default_factory=lambda: [Kegiatan()])


# ===============================
# REQUEST / RESPONSE API
# ===============================
class LaporanBaruRequest(BaseModel):
    report_type: ReportVariant = ReportVariant.HARIAN
    tanggal: Optional[date] = None


class MutasiRequest(BaseModel):
    laporan: Laporan
    op: Literal["set", "add", "remove"]
    path: List[Union[int, str]]
    value: Any = None


class SimpanResponse(BaseModel):
    status: str = "success"
    laporan_id: str
    data: Laporan


class LaporanRingkas(BaseModel):
    id: str
    tanggal: Optional[date] = None
    periode: str = ""
    report_type: ReportVariant
    jumlah_kegiatan: int = 0
    nama_jalan: List[str] = Field(default_factory=list)
