# gonzaapp/services/transactions.py
from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gonzaapp.models.entities import (
    BOOL_FIELDS, MONEY_FIELDS, REQUIRED_TEXT_FIELDS, TRANSACTION_FIELDS, Transaction, new_id
)
from gonzaapp.services.broadcast import broadcast_update
from gonzaapp.services.dates import day_bounds_utc, get_date_key, parse_client_datetime, utc_now
from gonzaapp.services.formulas import COMISION_EXTRA, D, apply_formulas, calculate_formulas, round2
from gonzaapp.services.retry import with_retry
from gonzaapp.services.settings_store import load_settings

logger = logging.getLogger(__name__)

TRAMITE_OPTIONS = ("SOAT",)
TIPO_DOCUMENTO_OPTIONS = ("CC", "NIT", "TI", "CE", "PAS")
NOVEDAD_OPTIONS = (
    "Inicial",
    "Error Pasajero",
    "Renovacion",
    "Indeterminado",
    "Sin Novedad",
    "Cambio de Categoria",
)

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Result = Dict[str, Any]


# --- Conversion de valores ------------------------------------------------

def to_number(value: Any) -> Decimal:
    """Como ``Number(x) || 0`` del navegador; tambien acepta '$ 1.200.000'. NaN e infinito dan 0."""
    if value is None or value == "" or isinstance(value, bool):
        return Decimal(int(value)) if isinstance(value, bool) else Decimal("0")
    if isinstance(value, (int, float, Decimal)):
        d = D(value)
    else:
        d = _parse_number(str(value).strip())
    return d if d.is_finite() else Decimal("0")


def _parse_number(s: str) -> Decimal:
    try:
        return Decimal(s)
    except InvalidOperation:
        digits = re.sub(r"[^\d-]", "", s)
        try:
            return Decimal(digits) if digits not in ("", "-") else Decimal("0")
        except InvalidOperation:
            return Decimal("0")


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "on", "si", "sí", "yes"}
    return bool(value)


def coerce_field(key: str, value: Any) -> Any:
    """Valor camelCase del navegador -> valor para la columna."""
    if key in MONEY_FIELDS:
        return round2(to_number(value))
    if key == "cilindraje":
        if value is None or value == "":
            return None
        return int(to_number(value))
    if key in BOOL_FIELDS:
        return to_bool(value)
    if key == "fecha":
        return parse_client_datetime(value)
    if value is None:
        return None
    return str(value)


def record_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Solo claves conocidas, convertidas a atributos del modelo."""
    out: Dict[str, Any] = {}
    for key, value in payload.items():
        attr = TRANSACTION_FIELDS.get(key)
        if attr is None:
            continue
        out[attr] = coerce_field(key, value)
    return out


# --- Lecturas -------------------------------------------------------------

def _read(db: Session, fn):
    def _attempt():
        try:
            return fn()
        except SQLAlchemyError:
            db.rollback()
            raise
    return with_retry(_attempt, retryable=(SQLAlchemyError,))


def get_transactions(db: Session) -> List[Transaction]:
    return _read(db, lambda: db.query(Transaction).order_by(Transaction.fecha.desc()).all())


def get_transactions_paginated(db: Session, date_key: str, limit: int = 100,
                               offset: int = 0) -> Tuple[List[Transaction], int]:
    """Transacciones de un dia colombiano (``YYYY-MM-DD``), mas recientes primero."""
    if not date_key or not DATE_KEY_RE.match(date_key):
        raise ValueError("Debe enviar el parámetro date=YYYY-MM-DD")
    start, end = day_bounds_utc(date_key)

    def _query():
        q = db.query(Transaction).filter(Transaction.fecha >= start, Transaction.fecha < end)
        total = q.count()
        rows = q.order_by(Transaction.fecha.desc()).offset(max(offset, 0)).limit(max(limit, 0)).all()
        return rows, total

    return _read(db, _query)


def get_transactions_by_ids(db: Session, ids: Iterable[str]) -> List[Transaction]:
    ids = [i for i in ids if isinstance(i, str)]
    if not ids:
        return []
    return _read(db, lambda: db.query(Transaction).filter(Transaction.id.in_(ids)).all())


def summarize_by_date(records: Iterable[Transaction]) -> List[Dict[str, Any]]:
    """Totales por dia (Colombia), el dia mas reciente primero."""
    totals: Dict[str, Dict[str, Any]] = {}
    for tx in records:
        key = get_date_key(tx.fecha)
        cur = totals.setdefault(key, {
            "date": key,
            "precioNetoTotal": Decimal("0"),
            "tarifaServicioTotal": Decimal("0"),
            "impuesto4x1000Total": Decimal("0"),
            "gananciaBrutaTotal": Decimal("0"),
            "transactionCount": 0,
        })
        f = calculate_formulas(tx)
        precio = D(tx.precio_neto) + (COMISION_EXTRA if tx.comision_extra else Decimal("0"))
        cur["precioNetoTotal"] += precio
        cur["tarifaServicioTotal"] += D(tx.tarifa_servicio)
        cur["impuesto4x1000Total"] += f["impuesto4x1000"]
        cur["gananciaBrutaTotal"] += f["gananciaBruta"]
        cur["transactionCount"] += 1

    out = []
    for key in sorted(totals, reverse=True):
        row = totals[key]
        out.append({k: (float(v) if isinstance(v, Decimal) else v) for k, v in row.items()})
    return out


def get_transactions_summary(db: Session) -> List[Dict[str, Any]]:
    return summarize_by_date(get_transactions(db))


# --- Escrituras -----------------------------------------------------------

def new_record_defaults() -> Dict[str, Any]:
    """Fila nueva: fecha de ahora y todo lo demas vacio."""
    cfg = load_settings()
    return {
        "fecha": utc_now(),
        "tramite": cfg["tabla"]["tramite_por_defecto"],
        "pagado": False,
        "boleta": False,
        "boletas_registradas": Decimal("0"),
        "emitido_por": "",
        "placa": "",
        "tipo_documento": "",
        "numero_documento": "",
        "nombre": "",
        "cilindraje": None,
        "tipo_vehiculo": None,
        "celular": None,
        "ciudad": "",
        "asesor": "",
        "novedad": None,
        "precio_neto": Decimal("0"),
        "comision_extra": False,
        "tarifa_servicio": Decimal("0"),
        "impuesto_4x1000": Decimal("0"),
        "ganancia_bruta": Decimal("0"),
        "rappi": False,
        "observaciones": None,
    }


def _fail(db: Session, msg: str, exc: Exception) -> Result:
    db.rollback()
    logger.error("%s: %s", msg, exc, exc_info=True)
    return {"success": False, "error": str(exc) or msg}


def create_record(db: Session, payload: Optional[Dict[str, Any]] = None) -> Result:
    try:
        attrs = new_record_defaults() | record_from_payload(payload or {})
        if attrs.get("fecha") is None:
            attrs["fecha"] = utc_now()
        attrs["id"] = attrs.get("id") or new_id()
        tx = Transaction(**attrs)
        apply_formulas(tx)
        db.add(tx)
        db.commit()
    except (SQLAlchemyError, ValueError, ArithmeticError) as e:
        return _fail(db, "Error creando registro", e)
    broadcast_update("CREATE", [tx.to_dict()])
    return {"success": True, "id": tx.id}


def _apply_payload(tx: Transaction, payload: Dict[str, Any]) -> None:
    attrs = record_from_payload(payload)
    attrs.pop("id", None)
    if "fecha" in attrs and attrs["fecha"] is None:
        attrs.pop("fecha")
    for key in REQUIRED_TEXT_FIELDS:
        attr = TRANSACTION_FIELDS[key]
        if attr in attrs and attrs[attr] is None:
            attrs[attr] = ""
    for attr, value in attrs.items():
        setattr(tx, attr, value)
    apply_formulas(tx)


def update_records(db: Session, records: Iterable[Dict[str, Any]]) -> Result:
    """Guarda registros completos o parciales; los campos derivados se recalculan."""
    updated: List[Transaction] = []
    try:
        for payload in records:
            rid = payload.get("id")
            if not rid:
                raise ValueError("Registro sin id")
            tx = db.get(Transaction, rid)
            if tx is None:
                logger.debug("Registro %s no existe, se omite", rid)
                continue
            _apply_payload(tx, payload)
            updated.append(tx)
        db.commit()
    except (SQLAlchemyError, ValueError, ArithmeticError) as e:
        return _fail(db, "Error actualizando registros", e)
    if updated:
        broadcast_update("UPDATE", [tx.to_dict() for tx in updated])
    return {"success": True, "updated": len(updated)}


def delete_records(db: Session, ids: Iterable[str]) -> Result:
    ids = list(ids)
    try:
        rows = db.query(Transaction).filter(Transaction.id.in_(ids)).all()
        for tx in rows:
            db.delete(tx)
        db.commit()
    except SQLAlchemyError as e:
        return _fail(db, "Error eliminando registros", e)
    broadcast_update("DELETE", ids)
    return {"success": True, "deleted": len(rows)}


def pay_selected(db: Session, ids: Iterable[str]) -> Result:
    """Marca como pagadas las filas seleccionadas con el total de su precio neto."""
    try:
        rows = db.query(Transaction).filter(Transaction.id.in_(list(ids))).all()
        total = round2(sum((D(tx.precio_neto) for tx in rows), Decimal("0")))
        for tx in rows:
            tx.pagado = True
            tx.boletas_registradas = total
        db.commit()
    except SQLAlchemyError as e:
        return _fail(db, "Error registrando pago", e)
    broadcast_update("UPDATE", [tx.to_dict() for tx in rows])
    return {"success": True, "total": float(total), "count": len(rows)}
