import threading

import pytest

from gonzaapp.services.edit_buffer import EditBuffer, RowState


class FakeStore:
    """Tabla en memoria con la misma interfaz que usa el buffer."""

    def __init__(self, rows):
        self.rows = {r["id"]: dict(r) for r in rows}
        self.saves = []
        self.fail_with = None
        self.saved = threading.Event()

    def save(self, records):
        self.saves.append([dict(r) for r in records])
        if self.fail_with:
            return {"success": False, "error": self.fail_with}
        for r in records:
            self.rows[r["id"]] = dict(r)
        self.saved.set()
        return {"success": True}

    def load(self, ids):
        return [dict(self.rows[i]) for i in ids if i in self.rows]


def _row(id_, **kw):
    row = {"id": id_, "fecha": "2024-01-15T14:00:00Z", "placa": "", "precioNeto": 0,
           "tarifaServicio": 0, "tipoVehiculo": None, "cilindraje": None,
           "comisionExtra": False, "rappi": False}
    row.update(kw)
    return row


@pytest.fixture
def store():
    return FakeStore([_row("r1"), _row("r2", precioNeto=50000)])


@pytest.fixture
def buffer(store):
    buf = EditBuffer(save_fn=store.save, load_fn=store.load, delay=60)
    yield buf
    buf.cancel()


def test_edit_marks_row_editing(buffer):
    assert buffer.state("r1") is RowState.CLEAN
    buffer.apply_edit("r1", "placa", "ABC123")
    assert buffer.state("r1") is RowState.EDITING
    assert buffer.pending() == {"r1": {"placa": "ABC123"}}


def test_edits_merge_per_row(buffer):
    buffer.apply_edit("r1", "placa", "ABC123")
    buffer.apply_edit("r1", "nombre", "Juan")
    buffer.apply_edit("r2", "placa", "XYZ987")
    assert buffer.pending() == {"r1": {"placa": "ABC123", "nombre": "Juan"}, "r2": {"placa": "XYZ987"}}


def test_numeric_strings_are_coerced(buffer):
    buffer.apply_edit("r1", "precioNeto", "120000")
    buffer.apply_edit("r1", "tarifaServicio", "")
    buffer.apply_edit("r1", "cilindraje", "abc")
    assert buffer.pending()["r1"] == {"precioNeto": 120000, "tarifaServicio": 0, "cilindraje": 0}


def test_flush_saves_full_merged_records(buffer, store):
    buffer.apply_edit("r1", "placa", "ABC123")
    buffer.apply_edit("r2", "tarifaServicio", 15000)
    result = buffer.flush()
    assert result == {"success": True}
    assert len(store.saves) == 1
    saved = {r["id"]: r for r in store.saves[0]}
    assert saved["r1"]["placa"] == "ABC123"
    assert saved["r1"]["fecha"] == "2024-01-15T14:00:00Z"
    assert saved["r2"]["precioNeto"] == 50000
    assert saved["r2"]["tarifaServicio"] == 15000
    assert buffer.pending() == {}
    assert buffer.state("r1") is RowState.CLEAN


def test_flush_with_nothing_pending(buffer, store):
    assert buffer.flush() is None
    assert store.saves == []


def test_vehicle_type_derives_soat_price(buffer):
    buffer.apply_edit("r1", "tipoVehiculo", "Ciclomotor")
    assert buffer.pending()["r1"]["precioNeto"] == 117900


def test_cylinder_uses_stored_vehicle_type(store, buffer):
    store.rows["r1"]["tipoVehiculo"] = "Autos Familiares 0 - 9 años"
    buffer.apply_edit("r1", "cilindraje", "1600")
    assert buffer.pending()["r1"] == {"cilindraje": 1600, "precioNeto": 542400}


def test_banded_type_without_cylinder_keeps_price(buffer):
    buffer.apply_edit("r2", "tipoVehiculo", "Autos Familiares 0 - 9 años")
    assert "precioNeto" not in buffer.pending()["r2"]


def test_failed_save_keeps_edits(buffer, store):
    store.fail_with = "base caida"
    buffer.apply_edit("r1", "placa", "ABC123")
    result = buffer.flush()
    assert result == {"success": False, "error": "base caida"}
    assert buffer.last_error == "base caida"
    assert buffer.state("r1") is RowState.EDITING
    assert buffer.pending() == {"r1": {"placa": "ABC123"}}

    store.fail_with = None
    assert buffer.flush() == {"success": True}
    assert buffer.last_error is None
    assert store.rows["r1"]["placa"] == "ABC123"


def test_save_exception_is_reported(store):
    def boom(records):
        raise RuntimeError("explota")

    buf = EditBuffer(save_fn=boom, load_fn=store.load, delay=60)
    buf.apply_edit("r1", "placa", "X")
    result = buf.flush()
    buf.cancel()
    assert result["success"] is False
    assert "explota" in result["error"]
    assert buf.pending() == {"r1": {"placa": "X"}}


def test_edit_during_save_is_not_lost(store):
    buf = EditBuffer(save_fn=None, load_fn=store.load, delay=60)

    def save_and_edit(records):
        # llega otra edicion mientras se escribe
        buf.apply_edit("r1", "nombre", "Pedro")
        return store.save(records)

    buf.save_fn = save_and_edit
    buf.apply_edit("r1", "placa", "ABC123")
    buf.flush()
    buf.cancel()
    assert buf.state("r1") is RowState.EDITING
    assert buf.pending()["r1"]["nombre"] == "Pedro"


def test_edits_for_deleted_rows_are_dropped(buffer, store):
    buffer.apply_edit("r1", "placa", "ABC123")
    del store.rows["r1"]
    buffer.flush()
    assert buffer.pending() == {}


def test_overlay_applies_edits_and_formulas(buffer, store):
    buffer.apply_edit("r1", "precioNeto", 100000)
    buffer.apply_edit("r1", "tarifaServicio", 20000)
    buffer.apply_edit("r1", "rappi", True)
    rows = buffer.overlay(store.load(["r1", "r2"]))
    r1 = rows[0]
    assert r1["precioNeto"] == 100000
    assert r1["impuesto4x1000"] == -400.0
    assert r1["gananciaBruta"] == 20600.0
    assert rows[1] == store.rows["r2"]


def test_reconcile_releases_matching_rows(buffer, store):
    buffer.apply_edit("r1", "placa", "ABC123")
    buffer.apply_edit("r2", "placa", "ZZZ")
    remote = [dict(store.rows["r1"], placa="ABC123"), dict(store.rows["r2"])]
    assert buffer.reconcile(remote) == ["r1"]
    assert buffer.state("r1") is RowState.CLEAN
    assert buffer.pending() == {"r2": {"placa": "ZZZ"}}


def test_reconcile_compares_numbers_loosely(buffer, store):
    buffer.apply_edit("r1", "precioNeto", "120000")
    assert buffer.reconcile([dict(store.rows["r1"], precioNeto=120000.0)]) == ["r1"]


def test_debounce_saves_once_after_quiet_period(store):
    buf = EditBuffer(save_fn=store.save, load_fn=store.load, delay=0.2)
    buf.apply_edit("r1", "placa", "A")
    buf.apply_edit("r1", "placa", "AB")
    buf.apply_edit("r1", "placa", "ABC")
    assert store.saved.wait(timeout=5)
    buf.cancel()
    assert len(store.saves) == 1
    assert store.saves[0][0]["placa"] == "ABC"


def test_edits_kept_when_store_keeps_another_value(store):
    def save_other(records):
        # otra pestaña escribio encima entre el guardado y la relectura
        store.save(records)
        store.rows["r1"]["placa"] = "OTRAPESTANA"
        return {"success": True}

    buf = EditBuffer(save_fn=save_other, load_fn=store.load, delay=60)
    buf.apply_edit("r1", "placa", "MIA")
    buf.flush()
    buf.cancel()
    assert buf.state("r1") is RowState.EDITING
    assert buf.pending() == {"r1": {"placa": "MIA"}}

    # liberada cuando la base vuelve a coincidir
    assert buf.reconcile([dict(store.rows["r1"], placa="MIA")]) == ["r1"]
    assert buf.state("r1") is RowState.CLEAN


def test_non_finite_numbers_become_zero(buffer):
    buffer.apply_edit("r1", "precioNeto", "Infinity")
    buffer.apply_edit("r1", "tarifaServicio", float("nan"))
    assert buffer.pending()["r1"] == {"precioNeto": 0, "tarifaServicio": 0}
