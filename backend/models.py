import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text

from database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class LaporanDrainase(Base):
    __tablename__ = "laporan_drainase"

    id = Column(String(36), primary_key=True, default=generate_id)
    tanggal = Column(Date, nullable=True)
    periode = Column(String, nullable=False, default="")
    report_type = Column(String(20), nullable=False, default="harian", index=True)
    user_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class KegiatanDrainase(Base):
    __tablename__ = "kegiatan_drainase"

    id = Column(String(36), primary_key=True, default=generate_id)
    laporan_id = Column(String(36), ForeignKey("laporan_drainase.id", ondelete="CASCADE"), nullable=False, index=True)
    urutan = Column(Integer, nullable=False, default=0)
    nama_jalan = Column(String, nullable=False, default="")
    kecamatan = Column(String, nullable=False, default="")
    kelurahan = Column(String, nullable=False, default="")
    hari_tanggal = Column(Date, nullable=True)
    panjang_penanganan = Column(String, nullable=True)
    lebar_rata_rata = Column(String, nullable=True)
    rata_rata_sedimen = Column(String, nullable=True)
    volume_galian = Column(String, nullable=True)
    rencana_panjang = Column(String, nullable=True)
    rencana_volume = Column(String, nullable=True)
    realisasi_panjang = Column(String, nullable=True)
    realisasi_volume = Column(String, nullable=True)
    sisa_target = Column(String, nullable=True)
    alat_yang_dibutuhkan = Column(Text, nullable=True, comment="List alat (JSON array)")
    koordinator = Column(Text, default="[]", nullable=False, comment="List koordinator (JSON array)")
    jumlah_phl = Column(Integer, nullable=True)
    jumlah_upt = Column(Integer, nullable=True)
    jumlah_p3su = Column(Integer, nullable=True)
    keterangan = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AktifitasPenangananDetail(Base):
    __tablename__ = "aktifitas_penanganan_detail"

    id = Column(String(36), primary_key=True, default=generate_id)
    kegiatan_id = Column(String(36), ForeignKey("kegiatan_drainase.id", ondelete="CASCADE"), nullable=False, index=True)
    urutan = Column(Integer, nullable=False, default=0)
    jenis_saluran = Column(String, nullable=True)
    jenis_sedimen = Column(String, nullable=True)
    aktifitas_penanganan = Column(Text, nullable=True)
    foto_0_url = Column(Text, default="[]", nullable=False, comment="List URL foto 0% (JSON array)")
    foto_50_url = Column(Text, default="[]", nullable=False, comment="List URL foto 50% (JSON array)")
    foto_100_url = Column(Text, default="[]", nullable=False, comment="List URL foto 100% (JSON array)")
    foto_sket_url = Column(Text, default="[]", nullable=False, comment="List URL foto sket (JSON array)")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MaterialKegiatan(Base):
    __tablename__ = "material_kegiatan"

    id = Column(String(36), primary_key=True, default=generate_id)
    aktifitas_detail_id = Column(
        String(36), ForeignKey("aktifitas_penanganan_detail.id", ondelete="CASCADE"), nullable=False, index=True
    )
    urutan = Column(Integer, nullable=False, default=0)
    jenis = Column(String, nullable=False, default="")
    # Teks, bukan angka: format isian pengguna dipertahankan
    jumlah = Column(String, nullable=False, default="")
    satuan = Column(String, nullable=False, default="")
    keterangan = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class PeralatanKegiatan(Base):
    __tablename__ = "peralatan_kegiatan"

    id = Column(String(36), primary_key=True, default=generate_id)
    kegiatan_id = Column(String(36), ForeignKey("kegiatan_drainase.id", ondelete="CASCADE"), nullable=False, index=True)
    urutan = Column(Integer, nullable=False, default=0)
    nama = Column(String, nullable=False, default="")
    jumlah = Column(Integer, nullable=False, default=1)
    satuan = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class OperasionalAlatBeratKegiatan(Base):
    __tablename__ = "operasional_alat_berat_kegiatan"

    id = Column(String(36), primary_key=True, default=generate_id)
    kegiatan_id = Column(String(36), ForeignKey("kegiatan_drainase.id", ondelete="CASCADE"), nullable=False, index=True)
    urutan = Column(Integer, nullable=False, default=0)
    jenis = Column(String, nullable=False, default="")
    jumlah = Column(Integer, nullable=False, default=0)
    dexlite_jumlah = Column(String, nullable=True)
    dexlite_satuan = Column(String, nullable=True)
    pertalite_jumlah = Column(String, nullable=True)
    pertalite_satuan = Column(String, nullable=True)
    bio_solar_jumlah = Column(String, nullable=True)
    bio_solar_satuan = Column(String, nullable=True)
    keterangan = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
