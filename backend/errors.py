class LaporanError(Exception):
    """Induk semua kegagalan pada inti form laporan."""

    # Diisi proses simpan bila laporan sudah ter-commit sebelum gagal:
    # id laporan dan tree sebagian (baris yang sudah tersimpan punya id)
    laporan_id = None
    laporan = None


class ValidasiError(LaporanError):
    """Isian tidak valid; tree tidak diubah."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.message = message
        self.path = tuple(path) if path else ()


class MinimumItemError(ValidasiError):
    """Penghapusan ditolak karena koleksi sudah di jumlah minimum."""


class UploadError(LaporanError):
    def __init__(self, slot: str, filename: str, cause: Exception = None):
        super().__init__(f"Gagal mengunggah foto '{filename}' pada slot {slot}: {cause}")
        self.slot = slot
        self.filename = filename
        self.cause = cause


class StoreError(LaporanError):
    def __init__(self, level: str, operation: str, cause: Exception = None):
        super().__init__(f"Gagal {operation} pada {level}: {cause}")
        self.level = level
        self.operation = operation
        self.cause = cause


class LoadError(LaporanError):
    """Laporan tidak bisa dimuat; tidak ada tree parsial yang dikembalikan."""
