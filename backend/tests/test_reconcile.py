from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

import store
from errors import LoadError, StoreError, UploadError, ValidasiError
from form_tree import add_child, new_laporan, remove_child, set_field
from loader import load_laporan
from models import (
    AktifitasPenangananDetail,
    KegiatanDrainase,
    LaporanDrainase,
    MaterialKegiatan,
    OperasionalAlatBeratKegiatan,
    PeralatanKegiatan,
)
from options import Override, Selected
from reconcile import delete_laporan, save_laporan
from schemas import FotoBaru

TANGGAL = date(2026, 10, 19)


def _count(model, **where):
    async def fn(db):
        stmt = select(func.count()).select_from(model)
        for col, value in where.items():
            stmt = stmt.where(getattr(model, col) == value)
        return (await db.execute(stmt)).scalar_one()
    return fn


def _save(run_db, laporan, storage):
    async def fn(db):
        return await save_laporan(db, laporan, storage)
    return run_db(fn)


def _load(run_db, laporan_id):
    async def fn(db):
        return await load_laporan(db, laporan_id)
    return run_db(fn)


def _tanpa_key(data):
    if isinstance(data, dict):
        return {k: _tanpa_key(v) for k, v in data.items() if k != "key"}
    if isinstance(data, list):
        return [_tanpa_key(v) for v in data]
    return data


def _harian_mawar():
    laporan = new_laporan("harian", TANGGAL)
    k = ("kegiatans", 0)
    laporan = set_field(laporan, k + ("nama_jalan",), "Jl. Mawar")
    laporan = set_field(laporan, k + ("panjang_penanganan",), "10")
    laporan = set_field(laporan, k + ("lebar_rata_rata",), "2")
    laporan = set_field(laporan, k + ("rata_rata_sedimen",), "1")
    return laporan


# ===============================
# END TO END
# ===============================
def test_daily_report_round_trip(run_db, storage):
    laporan = _harian_mawar()
    laporan = set_field(laporan, ("kegiatans", 0, "kecamatan"), "Medan Kota")
    laporan = set_field(laporan, ("kegiatans", 0, "kelurahan"), "Pasar Baru")
    laporan = set_field(laporan, ("kegiatans", 0, "koordinator"), ["Koordinator Wilayah Utara"])
    laporan = set_field(laporan, ("kegiatans", 0, "jumlah_phl"), 6)
    assert laporan.kegiatans[0].volume_galian == "20.00"

    laporan_id, hasil = _save(run_db, laporan, storage)

    row = run_db(lambda db: db.get(KegiatanDrainase, hasil.kegiatans[0].id))
    assert row.volume_galian == "20.00"
    assert row.urutan == 0

    dimuat = _load(run_db, laporan_id)
    assert dimuat.kegiatans[0].volume_galian == "20.00"
    assert dimuat.periode == "Oktober 2026"
    assert _tanpa_key(dimuat.model_dump()) == _tanpa_key(hasil.model_dump())


def test_save_assigns_ids_but_keeps_ui_keys(run_db, storage):
    laporan = _harian_mawar()
    laporan_id, hasil = _save(run_db, laporan, storage)

    assert hasil.id == laporan_id
    assert hasil.kegiatans[0].key == laporan.kegiatans[0].key
    assert hasil.kegiatans[0].id is not None
    assert hasil.kegiatans[0].details[0].id is not None
    # Baris kosong tidak disimpan dan tidak punya id
    assert hasil.kegiatans[0].details[0].materials[0].id is None
    assert hasil.kegiatans[0].peralatans[0].id is None


def test_second_save_updates_instead_of_inserting(run_db, storage):
    laporan_id, hasil = _save(run_db, _harian_mawar(), storage)
    hasil = set_field(hasil, ("kegiatans", 0, "nama_jalan"), "Jl. Mawar Raya")
    laporan_id_2, hasil_2 = _save(run_db, hasil, storage)

    assert laporan_id_2 == laporan_id
    assert hasil_2.kegiatans[0].id == hasil.kegiatans[0].id
    assert run_db(_count(LaporanDrainase)) == 1
    assert run_db(_count(KegiatanDrainase)) == 1
    assert run_db(_count(AktifitasPenangananDetail)) == 1
    assert _load(run_db, laporan_id).kegiatans[0].nama_jalan == "Jl. Mawar Raya"


def test_validation_failure_writes_nothing(run_db, storage):
    laporan = new_laporan("harian")
    with pytest.raises(ValidasiError):
        _save(run_db, laporan, storage)
    assert run_db(_count(LaporanDrainase)) == 0


# ===============================
# MATERIAL
# ===============================
def _seed_materials(run_db):
    async def fn(db):
        db.add(LaporanDrainase(id="L1", tanggal=TANGGAL, periode="Oktober 2026", report_type="harian"))
        db.add(KegiatanDrainase(id="K1", laporan_id="L1", nama_jalan="Jl. Kenanga"))
        db.add(AktifitasPenangananDetail(id="D1", kegiatan_id="K1"))
        for i, mid in enumerate(["m1", "m2", "m3"]):
            db.add(MaterialKegiatan(id=mid, aktifitas_detail_id="D1", urutan=i, jenis="Pasir", jumlah=str(i + 1), satuan="M³"))
        db.add(PeralatanKegiatan(id="P1", kegiatan_id="K1", nama="Cangkul", jumlah=2, satuan="Unit"))
        await db.commit()
    run_db(fn)


def test_material_set_reconciliation(run_db, storage):
    _seed_materials(run_db)
    laporan = _load(run_db, "L1")
    detail = ("kegiatans", 0, "details", 0)
    assert [m.id for m in laporan.kegiatans[0].details[0].materials] == ["m1", "m2", "m3"]

    laporan = remove_child(laporan, detail + ("materials", "m2"))
    laporan = remove_child(laporan, detail + ("materials", "m3"))
    laporan = set_field(laporan, detail + ("materials", "m1", "jumlah"), "9,5")
    laporan = add_child(laporan, detail + ("materials",))
    laporan = set_field(laporan, detail + ("materials", 1, "jenis"), "Semen")
    laporan = set_field(laporan, detail + ("materials", 1, "jumlah"), "4")

    _, hasil = _save(run_db, laporan, storage)
    m4 = hasil.kegiatans[0].details[0].materials[1].id

    async def rows(db):
        result = await db.execute(
            select(MaterialKegiatan).where(MaterialKegiatan.aktifitas_detail_id == "D1").order_by(MaterialKegiatan.urutan)
        )
        return [(m.id, m.jenis, m.jumlah, m.satuan) for m in result.scalars().all()]

    assert run_db(rows) == [("m1", "Pasir", "9,5", "M³"), (m4, "Semen", "4", "Sak")]
    assert m4 not in ("m1", "m2", "m3")


def test_blank_material_is_never_inserted(run_db, storage):
    laporan = _harian_mawar()
    detail = ("kegiatans", 0, "details", 0)
    laporan = set_field(laporan, detail + ("materials", 0, "jenis"), "Pasir")
    laporan = add_child(laporan, detail + ("materials",))
    assert len(laporan.kegiatans[0].details[0].materials) == 2

    _save(run_db, laporan, storage)
    assert run_db(_count(MaterialKegiatan)) == 1


def test_blank_material_with_store_id_is_deleted(run_db, storage):
    _seed_materials(run_db)
    laporan = _load(run_db, "L1")
    path = ("kegiatans", 0, "details", 0, "materials", "m3")
    laporan = set_field(laporan, path + ("jenis",), None)
    laporan = set_field(laporan, path + ("jumlah",), "")
    laporan = set_field(laporan, path + ("satuan",), "")

    _save(run_db, laporan, storage)
    assert run_db(_count(MaterialKegiatan)) == 2


def test_option_values_round_trip_as_literal_text(run_db, storage):
    laporan = _harian_mawar()
    detail = ("kegiatans", 0, "details", 0)
    laporan = set_field(laporan, detail + ("materials", 0, "jenis"), "Semen")
    laporan = add_child(laporan, detail + ("materials",))
    laporan = set_field(laporan, detail + ("materials", 1, "jenis"), {"kind": "override", "text": "Batu Split XL"})
    laporan = set_field(laporan, detail + ("materials", 1, "jumlah"), "1")
    laporan = set_field(laporan, ("kegiatans", 0, "peralatans", 0, "nama"), {"kind": "override", "text": "Sekop Besar"})

    laporan_id, _ = _save(run_db, laporan, storage)

    async def jenis(db):
        result = await db.execute(select(MaterialKegiatan.jenis).order_by(MaterialKegiatan.urutan))
        return result.scalars().all()

    assert run_db(jenis) == ["Semen", "Batu Split XL"]

    dimuat = _load(run_db, laporan_id)
    materials = dimuat.kegiatans[0].details[0].materials
    assert materials[0].jenis == Selected(value="Semen")
    assert materials[1].jenis == Override(text="Batu Split XL")
    assert dimuat.kegiatans[0].peralatans[0].nama == Override(text="Sekop Besar")


# ===============================
# VARIANT & ORPHAN
# ===============================
def test_switch_to_tersier_deletes_heavy_equipment_but_keeps_equipment(run_db, storage):
    laporan = _harian_mawar()
    k = ("kegiatans", 0)
    laporan = set_field(laporan, k + ("peralatans", 0, "nama"), "Cangkul")
    laporan = set_field(laporan, k + ("operasional_alat_berats", 0, "jenis"), "Excavator")
    laporan = set_field(laporan, k + ("operasional_alat_berats", 0, "jumlah"), 1)
    laporan = set_field(laporan, k + ("operasional_alat_berats", 0, "dexlite_jumlah"), "20")

    _, hasil = _save(run_db, laporan, storage)
    kegiatan_id = hasil.kegiatans[0].id
    assert run_db(_count(OperasionalAlatBeratKegiatan, kegiatan_id=kegiatan_id)) == 1

    hasil = set_field(hasil, ("report_type",), "tersier")
    hasil = set_field(hasil, k + ("hari_tanggal",), TANGGAL)
    _, hasil_2 = _save(run_db, hasil, storage)

    assert hasil_2.kegiatans[0].id == kegiatan_id
    assert run_db(_count(OperasionalAlatBeratKegiatan, kegiatan_id=kegiatan_id)) == 0
    assert run_db(_count(PeralatanKegiatan, kegiatan_id=kegiatan_id)) == 1
    row = run_db(lambda db: db.get(KegiatanDrainase, kegiatan_id))
    assert row.volume_galian is None
    assert row.panjang_penanganan is None


def test_removed_site_is_deleted_with_children(run_db, storage):
    laporan = _harian_mawar()
    laporan = add_child(laporan, ("kegiatans",))
    laporan = set_field(laporan, ("kegiatans", 1, "nama_jalan"), "Jl. Melati")
    laporan = set_field(laporan, ("kegiatans", 1, "details", 0, "materials", 0, "jenis"), "Pasir")
    laporan = set_field(laporan, ("kegiatans", 1, "peralatans", 0, "nama"), "Sekop")

    laporan_id, hasil = _save(run_db, laporan, storage)
    assert run_db(_count(KegiatanDrainase)) == 2

    hasil = remove_child(hasil, ("kegiatans", 1))
    _save(run_db, hasil, storage)

    assert run_db(_count(KegiatanDrainase)) == 1
    assert run_db(_count(AktifitasPenangananDetail)) == 1
    assert run_db(_count(MaterialKegiatan)) == 0
    assert run_db(_count(PeralatanKegiatan)) == 0
    assert [k.nama_jalan for k in _load(run_db, laporan_id).kegiatans] == ["Jl. Mawar"]


def test_removed_detail_is_deleted_with_materials(run_db, storage):
    laporan = _harian_mawar()
    k = ("kegiatans", 0)
    laporan = add_child(laporan, k + ("details",))
    for i in range(2):
        laporan = set_field(laporan, k + ("details", i, "materials", 0, "jenis"), "Pasir")

    _, hasil = _save(run_db, laporan, storage)
    assert run_db(_count(MaterialKegiatan)) == 2
    tetap = hasil.kegiatans[0].details[1].id

    hasil = remove_child(hasil, k + ("details", 0))
    _save(run_db, hasil, storage)

    assert run_db(_count(AktifitasPenangananDetail)) == 1
    assert run_db(_count(MaterialKegiatan)) == 1
    assert run_db(_count(MaterialKegiatan, aktifitas_detail_id=tetap)) == 1


# ===============================
# FOTO
# ===============================
def test_new_detail_photos_use_store_ids_in_path(run_db, storage):
    laporan = _harian_mawar()
    slot = ("kegiatans", 0, "details", 0, "foto_0")
    laporan = add_child(laporan, slot, FotoBaru(filename="sebelum.jpg", data=b"a"))
    laporan = add_child(laporan, slot, FotoBaru(filename="sebelum-2.jpg", data=b"b"))

    laporan_id, hasil = _save(run_db, laporan, storage)
    kegiatan = hasil.kegiatans[0]
    detail = kegiatan.details[0]
    prefix = f"{laporan_id}/{kegiatan.id}/{detail.id}/0/"

    assert storage.paths == [prefix + "sebelum.jpg", prefix + "sebelum-2.jpg"]
    assert [f.url for f in detail.foto_0] == [f"https://storage.test/laporan-photos/{p}" for p in storage.paths]

    dimuat = _load(run_db, laporan_id)
    assert [f.url for f in dimuat.kegiatans[0].details[0].foto_0] == [f.url for f in detail.foto_0]

    # Simpan ulang tidak mengunggah lagi
    _save(run_db, hasil, storage)
    assert len(storage.uploads) == 2


async def _nama_jalan(db):
    result = await db.execute(select(KegiatanDrainase.nama_jalan).order_by(KegiatanDrainase.urutan))
    return result.scalars().all()


def _mawar_dan_anggrek():
    laporan = _harian_mawar()
    laporan = add_child(laporan, ("kegiatans",))
    return set_field(laporan, ("kegiatans", 1, "nama_jalan"), "Jl. Anggrek")


def test_upload_failure_keeps_earlier_sites(run_db, make_storage):
    storage = make_storage(fail_on={"/100/"})
    laporan = _mawar_dan_anggrek()
    laporan = add_child(laporan, ("kegiatans", 1, "details", 0, "foto_100"), FotoBaru(filename="sesudah.jpg", data=b"x"))

    with pytest.raises(UploadError) as exc:
        _save(run_db, laporan, storage)
    assert exc.value.slot == "foto_100"

    # Laporan dan kegiatan pertama sudah ter-commit, kegiatan kedua di-rollback
    assert run_db(_count(LaporanDrainase)) == 1
    assert run_db(_nama_jalan) == ["Jl. Mawar"]
    assert run_db(_count(AktifitasPenangananDetail)) == 1


def test_failed_save_carries_report_id_and_saved_tree(run_db, make_storage):
    storage = make_storage(fail_on={"/100/"})
    laporan = _mawar_dan_anggrek()
    laporan = add_child(laporan, ("kegiatans", 1, "details", 0, "foto_100"), FotoBaru(filename="sesudah.jpg", data=b"x"))

    with pytest.raises(UploadError) as exc:
        _save(run_db, laporan, storage)
    err = exc.value

    assert err.laporan_id is not None
    assert err.laporan.id == err.laporan_id
    assert err.laporan.periode == "Oktober 2026"
    # Kegiatan yang ter-commit sudah punya id, yang gagal masih belum
    assert [k.nama_jalan for k in err.laporan.kegiatans] == ["Jl. Mawar", "Jl. Anggrek"]
    assert err.laporan.kegiatans[0].id is not None
    assert err.laporan.kegiatans[0].details[0].id is not None
    assert err.laporan.kegiatans[1].id is None
    assert isinstance(err.laporan.kegiatans[1].details[0].foto_100[0], FotoBaru)
    assert [k.key for k in err.laporan.kegiatans] == [k.key for k in laporan.kegiatans]


def test_retry_with_saved_tree_updates_the_same_report(run_db, make_storage):
    storage = make_storage(fail_on={"/100/"})
    laporan = _mawar_dan_anggrek()
    laporan = add_child(laporan, ("kegiatans", 1, "details", 0, "foto_100"), FotoBaru(filename="sesudah.jpg", data=b"x"))

    with pytest.raises(UploadError) as exc:
        _save(run_db, laporan, storage)
    mawar_id = exc.value.laporan.kegiatans[0].id

    storage.fail_on.clear()
    laporan_id, hasil = _save(run_db, exc.value.laporan, storage)

    assert laporan_id == exc.value.laporan_id
    assert run_db(_count(LaporanDrainase)) == 1
    assert run_db(_nama_jalan) == ["Jl. Mawar", "Jl. Anggrek"]
    assert run_db(_count(AktifitasPenangananDetail)) == 2
    assert hasil.kegiatans[0].id == mawar_id
    assert hasil.kegiatans[1].details[0].foto_100[0].url.endswith("/100/sesudah.jpg")


def test_store_failure_rolls_back_only_the_failing_site(run_db, storage, monkeypatch):
    insert_asli = store.insert

    async def insert_gagal(db, model, values):
        if model is MaterialKegiatan and values["jenis"] == "Semen":
            raise StoreError(model.__tablename__, "insert", RuntimeError("disk penuh"))
        return await insert_asli(db, model, values)

    monkeypatch.setattr(store, "insert", insert_gagal)
    laporan = _mawar_dan_anggrek()
    laporan = set_field(laporan, ("kegiatans", 0, "details", 0, "materials", 0, "jenis"), "Pasir")
    laporan = set_field(laporan, ("kegiatans", 1, "details", 0, "materials", 0, "jenis"), "Semen")

    with pytest.raises(StoreError) as exc:
        _save(run_db, laporan, storage)
    assert exc.value.level == "material_kegiatan"
    assert exc.value.operation == "insert"
    assert exc.value.laporan_id is not None

    assert run_db(_count(LaporanDrainase)) == 1
    assert run_db(_nama_jalan) == ["Jl. Mawar"]
    assert run_db(_count(AktifitasPenangananDetail)) == 1
    assert run_db(_count(MaterialKegiatan, jenis="Pasir")) == 1
    assert run_db(_count(MaterialKegiatan, jenis="Semen")) == 0


def test_store_insert_wraps_database_error(run_db):
    _seed_materials(run_db)

    async def duplikat(db):
        values = {"id": "m1", "aktifitas_detail_id": "D1", "urutan": 9, "jenis": "Pasir", "jumlah": "1", "satuan": "M³"}
        try:
            return await store.insert(db, MaterialKegiatan, values)
        finally:
            await db.rollback()

    with pytest.raises(StoreError) as exc:
        run_db(duplikat)
    assert exc.value.level == "material_kegiatan"
    assert exc.value.operation == "insert"
    assert run_db(_count(MaterialKegiatan)) == 3


def test_commit_failure_is_reported_as_store_error(run_db, storage, monkeypatch):
    commit_asli = AsyncSession.commit
    calls = []

    async def commit_gagal(self):
        calls.append(1)
        # Commit pertama (laporan) lolos, commit kegiatan gagal
        if len(calls) == 2:
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        await commit_asli(self)

    monkeypatch.setattr(AsyncSession, "commit", commit_gagal)

    with pytest.raises(StoreError) as exc:
        _save(run_db, _harian_mawar(), storage)
    assert exc.value.level == "kegiatan_drainase"
    assert exc.value.operation == "commit"
    assert exc.value.laporan_id is not None

    assert run_db(_count(LaporanDrainase)) == 1
    assert run_db(_count(KegiatanDrainase)) == 0


# ===============================
# HAPUS LAPORAN
# ===============================
def test_delete_laporan_removes_every_level(run_db, storage):
    _seed_materials(run_db)
    run_db(lambda db: delete_laporan(db, "L1"))

    for model in (LaporanDrainase, KegiatanDrainase, AktifitasPenangananDetail, MaterialKegiatan, PeralatanKegiatan):
        assert run_db(_count(model)) == 0

    with pytest.raises(LoadError):
        run_db(lambda db: delete_laporan(db, "L1"))
