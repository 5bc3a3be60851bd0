from decimal import Decimal

import pytest

from gonzaapp.models.entities import Transaction
from gonzaapp.services.formulas import apply_formulas, calculate_formulas


def test_rappi_scenario():
    out = calculate_formulas({
        "rappi": True,
        "precioNeto": 100000,
        "tarifaServicio": 20000,
        "comisionExtra": False,
    })
    assert out["impuesto4x1000"] == Decimal("-400")
    assert out["rappiComision"] == Decimal("1000")
    assert out["gananciaBruta"] == Decimal("20600")


def test_comision_extra_adds_30000_before_tax():
    out = calculate_formulas({"precioNeto": 100000, "comisionExtra": True, "tarifaServicio": 0})
    assert out["precioNetoAjustado"] == Decimal("130000")
    assert out["impuesto4x1000"] == Decimal("-520")
    assert out["gananciaBruta"] == Decimal("-520")


def test_rappi_commission_uses_unadjusted_price():
    out = calculate_formulas({"precioNeto": 100000, "comisionExtra": True, "rappi": True})
    assert out["rappiComision"] == Decimal("1000")


def test_missing_values_are_zero():
    out = calculate_formulas({})
    assert out == {
        "precioNetoAjustado": Decimal("0"),
        "impuesto4x1000": Decimal("0"),
        "rappiComision": Decimal("0"),
        "gananciaBruta": Decimal("0"),
    }


@pytest.mark.parametrize("precio", [0, 1, 999, 50000, 250000, 1234567])
@pytest.mark.parametrize("tarifa", [0, 15000, 37500])
@pytest.mark.parametrize("comision", [False, True])
@pytest.mark.parametrize("rappi", [False, True])
def test_ganancia_is_sum_of_parts(precio, tarifa, comision, rappi):
    out = calculate_formulas({"precioNeto": precio, "tarifaServicio": tarifa,
                              "comisionExtra": comision, "rappi": rappi})
    assert out["gananciaBruta"] == Decimal(tarifa) + out["impuesto4x1000"] + out["rappiComision"]
    assert out["impuesto4x1000"] <= 0
    if not rappi:
        assert out["rappiComision"] == 0


def test_model_and_dict_agree():
    tx = Transaction(precio_neto=Decimal("80000"), tarifa_servicio=Decimal("12000"),
                     comision_extra=True, rappi=True)
    as_dict = {"precioNeto": 80000, "tarifaServicio": 12000, "comisionExtra": True, "rappi": True}
    assert calculate_formulas(tx) == calculate_formulas(as_dict)


def test_apply_formulas_overwrites_stored_values():
    tx = Transaction(precio_neto=Decimal("100000"), tarifa_servicio=Decimal("20000"),
                     comision_extra=False, rappi=True,
                     impuesto_4x1000=Decimal("123"), ganancia_bruta=Decimal("1"))
    apply_formulas(tx)
    assert tx.impuesto_4x1000 == Decimal("-400")
    assert tx.ganancia_bruta == Decimal("20600")
