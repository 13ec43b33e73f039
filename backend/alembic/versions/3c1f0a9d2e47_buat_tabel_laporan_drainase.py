"""buat tabel laporan drainase

Revision ID: 3c1f0a9d2e47
Revises: 
Create Date: 2026-10-19 09:12:05.418231

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2e47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated=True):
    cols = [sa.Column("created_at", sa.DateTime(), nullable=True)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), nullable=True))
    return cols


def upgrade():
    op.create_table(
        "laporan_drainase",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("tanggal", sa.Date(), nullable=True),
        sa.Column("periode", sa.String(), nullable=False, server_default=""),
        sa.Column("report_type", sa.String(length=20), nullable=False, server_default="harian"),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_laporan_drainase_report_type", "laporan_drainase", ["report_type"])

    op.create_table(
        "kegiatan_drainase",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("laporan_id", sa.String(length=36),
                  sa.ForeignKey("laporan_drainase.id", ondelete="CASCADE"), nullable=False),
        sa.Column("urutan", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("nama_jalan", sa.String(), nullable=False, server_default=""),
        sa.Column("kecamatan", sa.String(), nullable=False, server_default=""),
        sa.Column("kelurahan", sa.String(), nullable=False, server_default=""),
        sa.Column("hari_tanggal", sa.Date(), nullable=True),
        sa.Column("panjang_penanganan", sa.String(), nullable=True),
        sa.Column("lebar_rata_rata", sa.String(), nullable=True),
        sa.Column("rata_rata_sedimen", sa.String(), nullable=True),
        sa.Column("volume_galian", sa.String(), nullable=True),
        sa.Column("rencana_panjang", sa.String(), nullable=True),
        sa.Column("rencana_volume", sa.String(), nullable=True),
        sa.Column("realisasi_panjang", sa.String(), nullable=True),
        sa.Column("realisasi_volume", sa.String(), nullable=True),
        sa.Column("sisa_target", sa.String(), nullable=True),
        sa.Column("alat_yang_dibutuhkan", sa.Text(), nullable=True),
        sa.Column("koordinator", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("jumlah_phl", sa.Integer(), nullable=True),
        sa.Column("jumlah_upt", sa.Integer(), nullable=True),
        sa.Column("jumlah_p3su", sa.Integer(), nullable=True),
        sa.Column("keterangan", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_kegiatan_drainase_laporan_id", "kegiatan_drainase", ["laporan_id"])

    op.create_table(
        "aktifitas_penanganan_detail",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("kegiatan_id", sa.String(length=36),
                  sa.ForeignKey("kegiatan_drainase.id", ondelete="CASCADE"), nullable=False),
        sa.Column("urutan", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("jenis_saluran", sa.String(), nullable=True),
        sa.Column("jenis_sedimen", sa.String(), nullable=True),
        sa.Column("aktifitas_penanganan", sa.Text(), nullable=True),
        sa.Column("foto_0_url", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("foto_50_url", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("foto_100_url", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("foto_sket_url", sa.Text(), nullable=False, server_default="[]"),
        *_timestamps(),
    )
    op.create_index("ix_aktifitas_penanganan_detail_kegiatan_id", "aktifitas_penanganan_detail", ["kegiatan_id"])

    op.create_table(
        "material_kegiatan",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("aktifitas_detail_id", sa.String(length=36),
                  sa.ForeignKey("aktifitas_penanganan_detail.id", ondelete="CASCADE"), nullable=False),
        sa.Column("urutan", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("jenis", sa.String(), nullable=False, server_default=""),
        sa.Column("jumlah", sa.String(), nullable=False, server_default=""),
        sa.Column("satuan", sa.String(), nullable=False, server_default=""),
        sa.Column("keterangan", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_material_kegiatan_aktifitas_detail_id", "material_kegiatan", ["aktifitas_detail_id"])

    op.create_table(
        "peralatan_kegiatan",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("kegiatan_id", sa.String(length=36),
                  sa.ForeignKey("kegiatan_drainase.id", ondelete="CASCADE"), nullable=False),
        sa.Column("urutan", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("nama", sa.String(), nullable=False, server_default=""),
        sa.Column("jumlah", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("satuan", sa.String(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_peralatan_kegiatan_kegiatan_id", "peralatan_kegiatan", ["kegiatan_id"])

    op.create_table(
        "operasional_alat_berat_kegiatan",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("kegiatan_id", sa.String(length=36),
                  sa.ForeignKey("kegiatan_drainase.id", ondelete="CASCADE"), nullable=False),
        sa.Column("urutan", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("jenis", sa.String(), nullable=False, server_default=""),
        sa.Column("jumlah", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dexlite_jumlah", sa.String(), nullable=True),
        sa.Column("dexlite_satuan", sa.String(), nullable=True),
        sa.Column("pertalite_jumlah", sa.String(), nullable=True),
        sa.Column("pertalite_satuan", sa.String(), nullable=True),
        sa.Column("bio_solar_jumlah", sa.String(), nullable=True),
        sa.Column("bio_solar_satuan", sa.String(), nullable=True),
        sa.Column("keterangan", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_operasional_alat_berat_kegiatan_kegiatan_id", "operasional_alat_berat_kegiatan", ["kegiatan_id"])


def downgrade():
    op.drop_table("operasional_alat_berat_kegiatan")
    op.drop_table("peralatan_kegiatan")
    op.drop_table("material_kegiatan")
    op.drop_table("aktifitas_penanganan_detail")
    op.drop_table("kegiatan_drainase")
    op.drop_table("laporan_drainase")
