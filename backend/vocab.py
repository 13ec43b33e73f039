# ======================== DATA PILIHAN (VOCABULARY) ========================
# Daftar pilihan tetap yang dipakai form laporan drainase.
# Nilai di luar daftar ini diperlakukan sebagai isian bebas ("Lainnya").

SEDIMEN_OPTIONS = [
    "Padat", "Cair", "Padat & Cair", "Batu", "Batu/Padat", "Batu/Cair",
    "Padat & Batu", "Padat/ Gulma & Sampah", "Padat/ Cair/Sampah", "Gulma/Rumput",
    "Batu/ Padat & Cair", "Sampah",
]

MATERIAL_OPTIONS = [
    "Pasir", "Semen", "Batu Split", "Batu Kali", "Batu Bata", "Besi Beton",
    "Kawat Bendrat", "Kayu Bekisting", "Paving Block", "U-Ditch", "Box Culvert",
    "Tutup Saluran", "Karung", "Sirtu", "Tanah Urug",
]

# Satuan bawaan per jenis material (kunci huruf kecil)
MATERIAL_DEFAULT_UNITS = {
    "pasir": "M³",
    "semen": "Sak",
    "batu split": "M³",
    "batu kali": "M³",
    "batu bata": "Buah",
    "besi beton": "Batang",
    "kawat bendrat": "Kg",
    "kayu bekisting": "Lembar",
    "paving block": "M²",
    "u-ditch": "Buah",
    "box culvert": "Buah",
    "tutup saluran": "Buah",
    "karung": "Buah",
    "sirtu": "M³",
    "tanah urug": "M³",
}

PERALATAN_OPTIONS = [
    "Cangkul", "Sekop", "Linggis", "Gerobak Dorong", "Ember", "Garpu Sampah",
    "Sapu Lidi", "Parang", "Mesin Pompa Air", "Mesin Potong Rumput",
    "Gergaji", "Palu", "Karung", "Tali Tambang", "Sepatu Boot",
]

ALAT_BERAT_OPTIONS = [
    "Excavator", "Excavator Amphibi", "Mini Excavator", "Dump Truck",
    "Loader", "Backhoe Loader", "Bulldozer", "Truk Sedot Lumpur",
    "Pick Up", "Crane",
]

SATUAN_OPTIONS = [
    "Unit", "Buah", "M³", "M²", "M", "Sak", "Kg", "Liter", "Batang",
    "Lembar", "Set", "Rit", "Truk", "Karung",
]

BBM_SATUAN_OPTIONS = ["Liter", "Jerigen", "Drum"]

KOORDINATOR_OPTIONS = [
    "Koordinator Wilayah Utara", "Koordinator Wilayah Selatan",
    "Koordinator Wilayah Timur", "Koordinator Wilayah Barat",
    "Koordinator Wilayah Tengah",
]

KECAMATAN_KELURAHAN = {
    "Medan Kota": ["Pasar Baru", "Sei Rengas I", "Teladan Barat", "Kotamatsum III"],
    "Medan Baru": ["Darat", "Petisah Hulu", "Babura", "Titi Rantai"],
    "Medan Timur": ["Gaharu", "Durian", "Sidodadi", "Glugur Darat I"],
    "Medan Barat": ["Kesawan", "Silalas", "Karang Berombak", "Sei Agul"],
    "Medan Helvetia": ["Helvetia", "Dwikora", "Tanjung Gusta", "Cinta Damai"],
}

BULAN_INDO = ["", "Januari", "Februari", "Maret", "April", "Mei", "Juni",
              "Juli", "Agustus", "September", "Oktober", "November", "Desember"]
