from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Mapping

Money = Decimal

Q2 = Decimal("0.01")

COMISION_EXTRA = Decimal("30000")
TASA_4X1000 = Decimal("-0.004")
TASA_RAPPI = Decimal("0.01")


def D(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if x is None or x == "":
        return Decimal("0")
    return Decimal(str(x))


def round2(x: Decimal) -> Decimal:
    return x.quantize(Q2, rounding=ROUND_HALF_UP)


def _read(record: Any, key: str, attr: str):
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, attr, None)


def calculate_formulas(record: Any) -> Dict[str, Decimal]:
    """
    Campos derivados de una transaccion. Acepta el dict camelCase del
    navegador o una instancia de Transaction.

      precioNetoAjustado = precioNeto + 30000 si comisionExtra
      impuesto4x1000     = precioNetoAjustado * -0.004
      rappiComision      = precioNeto * 0.01 si rappi
      gananciaBruta      = tarifaServicio + impuesto4x1000 + rappiComision
    """
    precio_neto = D(_read(record, "precioNeto", "precio_neto"))
    tarifa = D(_read(record, "tarifaServicio", "tarifa_servicio"))
    comision_extra = bool(_read(record, "comisionExtra", "comision_extra"))
    rappi = bool(_read(record, "rappi", "rappi"))

    ajustado = precio_neto + (COMISION_EXTRA if comision_extra else Decimal("0"))
    impuesto = round2(ajustado * TASA_4X1000)
    rappi_comision = round2(precio_neto * TASA_RAPPI) if rappi else Decimal("0.00")
    ganancia = round2(tarifa + impuesto + rappi_comision)

    return {
        "precioNetoAjustado": round2(ajustado),
        "impuesto4x1000": impuesto,
        "rappiComision": rappi_comision,
        "gananciaBruta": ganancia,
    }


def apply_formulas(tx) -> Dict[str, Decimal]:
    """Sobrescribe los valores guardados para que coincidan con las formulas."""
    out = calculate_formulas(tx)
    tx.impuesto_4x1000 = out["impuesto4x1000"]
    tx.ganancia_bruta = out["gananciaBruta"]
    return out
