# gonzaapp/services/boletas.py
from __future__ import annotations

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gonzaapp.models.entities import BoletaPayment
from gonzaapp.services.dates import get_date_key, parse_client_datetime
from gonzaapp.services.formulas import D, round2

logger = logging.getLogger(__name__)

TASA_4X1000_BOLETA = Decimal("0.004")


def list_boleta_payments(db: Session) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in db.query(BoletaPayment).order_by(BoletaPayment.fecha).all()]


def validate_boleta_payload(payload: Dict[str, Any]) -> Optional[str]:
    """Mensaje de error o ``None`` si el pago es valido."""
    total = payload.get("totalPrecioNeto")
    if (not payload.get("boletaReferencia")
            or not isinstance(payload.get("placas"), list)
            or isinstance(total, bool)
            or not isinstance(total, (int, float))
            or (isinstance(total, float) and not math.isfinite(total))):
        return "Datos requeridos"
    return None


def create_boleta_payment(db: Session, payload: Dict[str, Any],
                          created_by: Optional[str] = None) -> Dict[str, Any]:
    error = validate_boleta_payload(payload)
    if error:
        return {"success": False, "error": error}
    tramites = payload.get("tramites")
    try:
        p = BoletaPayment(
            boleta_referencia=str(payload["boletaReferencia"]),
            placas=",".join(str(x) for x in payload["placas"]),
            tramites=",".join(str(x) for x in tramites) if isinstance(tramites, list) else None,
            total_precio_neto=round2(D(payload["totalPrecioNeto"])),
            created_by_initial=created_by,
        )
        db.add(p)
        db.commit()
    except (SQLAlchemyError, ArithmeticError) as e:
        db.rollback()
        logger.error("Error al guardar boleta: %s", e, exc_info=True)
        return {"success": False, "error": "Error al guardar boleta"}
    logger.info("Boleta %s registrada (%s placas)", p.boleta_referencia, len(payload["placas"]))
    return {"success": True, "id": p.id}


def boleta_totals(payments: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    """Egresos, 4x1000 (redondeado por pago, a pesos enteros) y neto."""
    total_egresos = Decimal("0")
    total_4x1000 = Decimal("0")
    for p in payments:
        total = D(p.get("totalPrecioNeto"))
        total_egresos += total
        total_4x1000 += (total * TASA_4X1000_BOLETA).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return {
        "totalEgresos": float(total_egresos),
        "total4x1000": float(total_4x1000),
        "neto": float(total_egresos - total_4x1000),
    }


def group_payments_by_date(payments: Iterable[Dict[str, Any]]) -> List[Tuple[str, List[Dict[str, Any]]]]:
    """Por dia de registro del pago, el mas reciente primero (tambien dentro de cada dia)."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for p in payments:
        fecha = parse_client_datetime(p.get("fecha"))
        if fecha is None:
            continue
        groups.setdefault(get_date_key(fecha), []).append(p)
    out = []
    for key in sorted(groups, reverse=True):
        rows = sorted(groups[key], key=lambda r: parse_client_datetime(r["fecha"]), reverse=True)
        out.append((key, rows))
    return out
