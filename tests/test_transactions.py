from datetime import datetime
from decimal import Decimal

import pytest

from gonzaapp.config import settings as app_settings
from gonzaapp.models.entities import CuadreRecord, Transaction
from gonzaapp.services import transactions as svc
from gonzaapp.services.retry import RetryExhaustedError


def test_create_record_uses_defaults_and_formulas(db):
    result = svc.create_record(db, {"placa": "ABC123", "precioNeto": "100000",
                                    "tarifaServicio": 20000, "rappi": True})
    assert result["success"] is True
    tx = db.get(Transaction, result["id"])
    assert tx.tramite == "SOAT"
    assert tx.placa == "ABC123"
    assert tx.pagado is False
    assert tx.impuesto_4x1000 == Decimal("-400")
    assert tx.ganancia_bruta == Decimal("20600")
    assert tx.fecha is not None


def test_create_record_keeps_client_id(db):
    result = svc.create_record(db, {"id": "fijo-1"})
    assert result == {"success": True, "id": "fijo-1"}


def test_update_records_reapplies_formulas(db, make_tx):
    tx = make_tx()
    result = svc.update_records(db, [{"id": tx.id, "precioNeto": 200000, "comisionExtra": True,
                                      "gananciaBruta": 999999}])
    assert result == {"success": True, "updated": 1}
    db.refresh(tx)
    assert tx.impuesto_4x1000 == Decimal("-920")
    assert tx.ganancia_bruta == Decimal("19080")


def test_update_records_blanks_required_text(db, make_tx):
    tx = make_tx()
    svc.update_records(db, [{"id": tx.id, "nombre": None, "asesor": None, "celular": None}])
    db.refresh(tx)
    assert tx.nombre == ""
    assert tx.asesor == ""
    assert tx.celular is None


def test_update_records_parses_client_dates(db, make_tx):
    tx = make_tx()
    svc.update_records(db, [{"id": tx.id, "fecha": "2024-02-01T10:30"}])
    db.refresh(tx)
    assert tx.fecha == datetime(2024, 2, 1, 15, 30)


def test_update_records_without_id_fails(db):
    result = svc.update_records(db, [{"placa": "X"}])
    assert result["success"] is False
    assert "id" in result["error"]


def test_update_unknown_id_is_skipped(db):
    assert svc.update_records(db, [{"id": "no-existe", "placa": "X"}]) == {"success": True, "updated": 0}


def test_delete_records_cascades_cuadre(db, make_tx):
    tx = make_tx()
    db.add(CuadreRecord(transaction_id=tx.id, banco="Nequi"))
    db.commit()
    result = svc.delete_records(db, [tx.id])
    assert result == {"success": True, "deleted": 1}
    assert db.query(Transaction).count() == 0
    assert db.query(CuadreRecord).count() == 0


def test_pay_selected_sets_total(db, make_tx):
    a = make_tx(precio_neto=100000)
    b = make_tx(precio_neto=50000, placa="XYZ987")
    make_tx(precio_neto=70000, placa="OTRA")
    result = svc.pay_selected(db, [a.id, b.id])
    assert result["total"] == 150000.0
    db.refresh(a)
    db.refresh(b)
    assert a.pagado and b.pagado
    assert a.boletas_registradas == Decimal("150000")


def test_paginated_filters_bogota_day(db, make_tx):
    make_tx(fecha=datetime(2024, 1, 15, 14, 0))
    make_tx(fecha=datetime(2024, 1, 16, 3, 0))     # 22:00 del 15 en Bogota
    make_tx(fecha=datetime(2024, 1, 16, 6, 0))
    rows, total = svc.get_transactions_paginated(db, "2024-01-15")
    assert total == 2
    assert rows[0].fecha == datetime(2024, 1, 16, 3, 0)

    rows, total = svc.get_transactions_paginated(db, "2024-01-15", limit=1, offset=1)
    assert total == 2
    assert len(rows) == 1
    assert rows[0].fecha == datetime(2024, 1, 15, 14, 0)


@pytest.mark.parametrize("bad", ["", "15-01-2024", "2024/01/15"])
def test_paginated_rejects_bad_date(db, bad):
    with pytest.raises(ValueError):
        svc.get_transactions_paginated(db, bad)


def test_get_transactions_by_ids(db, make_tx):
    a = make_tx()
    make_tx(placa="OTRA")
    assert [t.id for t in svc.get_transactions_by_ids(db, [a.id, 7])] == [a.id]
    assert svc.get_transactions_by_ids(db, []) == []


def test_summary_per_day(db, make_tx):
    make_tx(fecha=datetime(2024, 1, 15, 14, 0), precio_neto=100000, tarifa_servicio=20000,
            comision_extra=True)
    make_tx(fecha=datetime(2024, 1, 15, 20, 0), precio_neto=50000, tarifa_servicio=10000, rappi=True)
    make_tx(fecha=datetime(2024, 1, 17, 14, 0), precio_neto=10000, tarifa_servicio=0)
    summary = svc.get_transactions_summary(db)
    assert [s["date"] for s in summary] == ["2024-01-17", "2024-01-15"]
    day = summary[1]
    assert day["transactionCount"] == 2
    assert day["precioNetoTotal"] == 180000.0
    assert day["tarifaServicioTotal"] == 30000.0
    assert day["impuesto4x1000Total"] == -720.0
    assert day["gananciaBrutaTotal"] == 30000 - 720 + 500


def test_reads_retry_then_raise(db, monkeypatch):
    calls = []

    def broken():
        calls.append(1)
        raise svc.SQLAlchemyError("bloqueada")

    monkeypatch.setattr(app_settings, "READ_RETRY_INITIAL_DELAY", 0.0)
    with pytest.raises(RetryExhaustedError):
        svc._read(db, broken)
    assert len(calls) == 5


@pytest.mark.parametrize("value,expected", [
    (None, Decimal("0")), ("", Decimal("0")), ("abc", Decimal("0")),
    ("1500", Decimal("1500")), ("$ 1.200.000", Decimal("1200000")), (True, Decimal("1")),
])
def test_to_number(value, expected):
    assert svc.to_number(value) == expected


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", float("nan"), float("inf"), Decimal("NaN")])
def test_to_number_non_finite_is_zero(value):
    assert svc.to_number(value) == Decimal("0")


@pytest.mark.parametrize("value", ["NaN", "Infinity"])
def test_create_with_non_finite_price_stores_zero(db, value):
    result = svc.create_record(db, {"precioNeto": value, "tarifaServicio": 1000})
    assert result["success"] is True
    tx = db.get(Transaction, result["id"])
    assert tx.precio_neto == Decimal("0")
    assert tx.ganancia_bruta == Decimal("1000")


def test_out_of_range_amount_is_reported(db, make_tx):
    assert svc.create_record(db, {"precioNeto": "1e30"})["success"] is False
    tx = make_tx()
    assert svc.update_records(db, [{"id": tx.id, "tarifaServicio": "1e30"}])["success"] is False
