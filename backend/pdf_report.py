import logging
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.units import cm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

F4_WIDTH = 21.5 * cm
F4_HEIGHT = 33.0 * cm
MARGIN_X = 1.5 * cm
MARGIN_BOTTOM = 2.0 * cm

JUDUL = {
    "harian": "LAPORAN HARIAN PEMELIHARAAN DRAINASE",
    "bulanan": "LAPORAN BULANAN PEMELIHARAAN DRAINASE",
    "tersier": "LAPORAN PEKERJAAN SALURAN TERSIER",
}

# (label, field) per jenis laporan; field yang tidak ada di data dilewati
FIELD_KEGIATAN = [
    ("Nama Jalan", "nama_jalan"),
    ("Kecamatan", "kecamatan"),
    ("Kelurahan", "kelurahan"),
    ("Hari / Tanggal", "hari_tanggal"),
    ("Panjang Penanganan (m)", "panjang_penanganan"),
    ("Lebar Rata-rata (m)", "lebar_rata_rata"),
    ("Rata-rata Sedimen (m)", "rata_rata_sedimen"),
    ("Volume Galian (m³)", "volume_galian"),
    ("Rencana Panjang (m)", "rencana_panjang"),
    ("Rencana Volume (m³)", "rencana_volume"),
    ("Realisasi Panjang (m)", "realisasi_panjang"),
    ("Realisasi Volume (m³)", "realisasi_volume"),
    ("Sisa Target (hari)", "sisa_target"),
    ("Alat yang Dibutuhkan", "alat_yang_dibutuhkan"),
    ("Koordinator", "koordinator"),
    ("Jumlah PHL", "jumlah_phl"),
    ("Jumlah UPT", "jumlah_upt"),
    ("Jumlah P3SU", "jumlah_p3su"),
    ("Keterangan", "keterangan"),
]

LABEL_FOTO = {"foto_0": "Foto 0%", "foto_50": "Foto 50%", "foto_100": "Foto 100%", "foto_sket": "Sket"}


def _teks(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) or "-"
    if hasattr(value, "strftime"):
        return value.strftime("%d-%m-%Y")
    return str(value) if str(value) != "" else "-"


class _Halaman:
    """Canvas + posisi Y; pindah halaman otomatis kalau ruang habis."""

    def __init__(self, buffer):
        self.c = canvas.Canvas(buffer, pagesize=(F4_WIDTH, F4_HEIGHT))
        self.y = F4_HEIGHT - 2.0 * cm

    def butuh(self, tinggi):
        if self.y - tinggi < MARGIN_BOTTOM:
            self.c.showPage()
            self.y = F4_HEIGHT - 2.0 * cm

    def judul(self, text, size=14):
        self.butuh(size + 10)
        self.c.setFont("Times-Bold", size)
        self.c.drawCentredString(F4_WIDTH / 2, self.y, text)
        self.y -= size + 8

    def subjudul(self, text):
        self.butuh(20)
        self.c.setFont("Times-Bold", 11)
        self.c.drawString(MARGIN_X, self.y, text)
        self.y -= 16

    def baris(self, label, value, indent=0.0, font_size=10):
        x_label = MARGIN_X + indent
        x_colon = x_label + 5.0 * cm
        x_text = x_colon + 0.4 * cm
        x_end = F4_WIDTH - MARGIN_X

        lines = simpleSplit(_teks(value), "Times-Roman", font_size, x_end - x_text) or [""]
        self.butuh(len(lines) * (font_size + 4))

        self.c.setFont("Times-Roman", font_size)
        self.c.drawString(x_label, self.y, label)
        self.c.drawString(x_colon, self.y, ":")
        for line in lines:
            self.c.drawString(x_text, self.y, line)
            self.y -= font_size + 4

    def tabel(self, header, rows, widths, indent=0.0, font_size=9):
        x0 = MARGIN_X + indent
        row_h = font_size + 6

        def gambar(cells, bold=False):
            self.butuh(row_h)
            self.c.setFont("Times-Bold" if bold else "Times-Roman", font_size)
            x = x0
            for cell, w in zip(cells, widths):
                self.c.rect(x, self.y - 4, w, row_h, stroke=1, fill=0)
                text = simpleSplit(_teks(cell), "Times-Roman", font_size, w - 4)
                self.c.drawString(x + 2, self.y, text[0] if text else "")
                x += w
            self.y -= row_h

        self.c.setStrokeColor(colors.black)
        self.c.setLineWidth(0.5)
        gambar(header, bold=True)
        for row in rows or [["-"] * len(header)]:
            gambar(row)
        self.y -= 6


def generate_laporan_pdf(data: dict) -> bytes:
    """
    Render laporan yang sudah resolved (lihat serializer.resolve_laporan)
    menjadi PDF ukuran F4.
    """
    buffer = BytesIO()
    h = _Halaman(buffer)
    jenis = data.get("report_type", "harian")

    h.judul(JUDUL.get(jenis, "LAPORAN PEMELIHARAAN DRAINASE"))
    h.judul("DINAS SUMBER DAYA AIR, BINA MARGA DAN BINA KONSTRUKSI", size=11)
    h.y -= 6
    h.baris("Tanggal", data.get("tanggal"))
    h.baris("Periode", data.get("periode"))

    for nomor, kegiatan in enumerate(data.get("kegiatans", []), start=1):
        h.y -= 8
        h.subjudul(f"Kegiatan {nomor}")
        for label, field in FIELD_KEGIATAN:
            if field in kegiatan:
                h.baris(label, kegiatan[field], indent=0.3 * cm)

        for i, detail in enumerate(kegiatan.get("details", []), start=1):
            h.subjudul(f"  Aktifitas Penanganan {i}")
            h.baris("Jenis Saluran", detail.get("jenis_saluran"), indent=0.6 * cm)
            h.baris("Jenis Sedimen", detail.get("jenis_sedimen"), indent=0.6 * cm)
            h.baris("Aktifitas", detail.get("aktifitas_penanganan"), indent=0.6 * cm)
            for slot, label in LABEL_FOTO.items():
                if slot in detail:
                    h.baris(label, f"{len(detail[slot])} foto", indent=0.6 * cm)
            h.tabel(
                ["Material", "Jumlah", "Satuan", "Keterangan"],
                [[m["jenis"], m["jumlah"], m["satuan"], m["keterangan"]] for m in detail.get("materials", [])],
                [5.0 * cm, 2.5 * cm, 2.5 * cm, 7.5 * cm],
                indent=0.6 * cm,
            )

        h.subjudul("  Peralatan")
        h.tabel(
            ["Nama", "Jumlah", "Satuan"],
            [[p["nama"], p["jumlah"], p["satuan"]] for p in kegiatan.get("peralatans", [])],
            [8.0 * cm, 3.0 * cm, 3.0 * cm],
            indent=0.6 * cm,
        )

        if jenis != "tersier":
            h.subjudul("  Operasional Alat Berat")
            h.tabel(
                ["Jenis", "Jumlah", "Dexlite", "Pertalite", "Bio Solar", "Keterangan"],
                [
                    [
                        a["jenis"], a["jumlah"],
                        f"{a['dexlite_jumlah'] or '-'} {a['dexlite_satuan'] or ''}".strip(),
                        f"{a['pertalite_jumlah'] or '-'} {a['pertalite_satuan'] or ''}".strip(),
                        f"{a['bio_solar_jumlah'] or '-'} {a['bio_solar_satuan'] or ''}".strip(),
                        a["keterangan"],
                    ]
                    for a in kegiatan.get("operasional_alat_berats", [])
                ],
                [4.0 * cm, 1.5 * cm, 2.5 * cm, 2.5 * cm, 2.5 * cm, 4.5 * cm],
                indent=0.6 * cm,
            )

    h.c.showPage()
    h.c.save()
    buffer.seek(0)
    logger.debug(f"PDF laporan {data.get('id')} selesai dibuat")
    return buffer.getvalue()
