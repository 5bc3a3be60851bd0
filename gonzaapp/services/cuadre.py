# gonzaapp/services/cuadre.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gonzaapp.models.entities import CuadreRecord, Transaction, new_id
from gonzaapp.services.dates import get_date_key, parse_client_datetime
from gonzaapp.services.formulas import D, round2
from gonzaapp.services.transactions import to_bool, to_number

logger = logging.getLogger(__name__)

Result = Dict[str, Any]

SIN_ASESOR = "Sin Asesor"
TEXT_FIELDS = {"banco": "banco", "banco2": "banco2", "referencia": "referencia"}


def _fail(db: Session, msg: str, exc: Exception) -> Result:
    db.rollback()
    logger.error("%s: %s", msg, exc, exc_info=True)
    return {"success": False, "error": str(exc) or msg}


def _apply(rec: CuadreRecord, data: Dict[str, Any]) -> None:
    """Solo cambia los campos presentes en ``data``."""
    for key, attr in TEXT_FIELDS.items():
        if key in data:
            setattr(rec, attr, str(data[key] or ""))
    if "monto" in data:
        rec.monto = None if data["monto"] in (None, "") else round2(to_number(data["monto"]))
    if "pagado" in data:
        rec.pagado = to_bool(data["pagado"])
    if "fechaCliente" in data:
        rec.fecha_cliente = parse_client_datetime(data["fechaCliente"])


def create_cuadre_records(db: Session, transaction_ids: Iterable[str]) -> Result:
    """
    Un registro de cuadre por transaccion; las que ya tienen uno se omiten.
    El monto arranca en precio neto + tarifa de servicio.
    """
    created = 0
    try:
        ids = [i for i in transaction_ids if i]
        existing = {tid for (tid,) in db.query(CuadreRecord.transaction_id)
                    .filter(CuadreRecord.transaction_id.in_(ids)).all()}
        for tx in db.query(Transaction).filter(Transaction.id.in_(ids)).all():
            if tx.id in existing:
                continue
            db.add(CuadreRecord(
                id=new_id(),
                transaction_id=tx.id,
                monto=round2(D(tx.precio_neto) + D(tx.tarifa_servicio)),
                pagado=False,
            ))
            created += 1
        db.commit()
    except (SQLAlchemyError, ValueError, ArithmeticError) as e:
        return _fail(db, "Error creando cuadre", e)
    logger.info("Cuadre: %d registros nuevos", created)
    return {"success": True, "created": created}


def create_cuadre_record(db: Session, data: Dict[str, Any]) -> Result:
    try:
        tid = data.get("transactionId")
        if not tid:
            raise ValueError("transactionId requerido")
        if db.get(Transaction, tid) is None:
            raise ValueError(f"Transaccion {tid} no existe")
        rec = CuadreRecord(id=new_id(), transaction_id=tid, banco="", banco2="", referencia="")
        _apply(rec, data)
        db.add(rec)
        db.commit()
    except (SQLAlchemyError, ValueError, ArithmeticError) as e:
        return _fail(db, "Error creando registro de cuadre", e)
    return {"success": True, "id": rec.id}


def update_cuadre_record(db: Session, transaction_id: str, data: Dict[str, Any]) -> Result:
    try:
        rec = db.query(CuadreRecord).filter(CuadreRecord.transaction_id == transaction_id).first()
        if rec is None:
            return {"success": False, "error": "Registro de cuadre no encontrado"}
        _apply(rec, data)
        db.commit()
    except (SQLAlchemyError, ValueError, ArithmeticError) as e:
        return _fail(db, "Error actualizando registro de cuadre", e)
    return {"success": True}


def delete_cuadre_records(db: Session, transaction_ids: Iterable[str]) -> Result:
    try:
        n = (db.query(CuadreRecord)
             .filter(CuadreRecord.transaction_id.in_(list(transaction_ids)))
             .delete(synchronize_session=False))
        db.commit()
    except SQLAlchemyError as e:
        return _fail(db, "Error eliminando registros de cuadre", e)
    return {"success": True, "deleted": n}


def _joined(tx: Transaction, rec: CuadreRecord) -> Dict[str, Any]:
    row = tx.to_dict()
    c = rec.to_dict()
    row.update({
        "cuadreId": c["id"],
        "transactionId": c["transactionId"],
        "banco": c["banco"],
        "banco2": c["banco2"],
        "monto": c["monto"],
        "cuadrePagado": c["pagado"],
        "fechaCliente": c["fechaCliente"],
        "referencia": c["referencia"],
        "createdAt": c["createdAt"],
        "totalCombinado": float(D(tx.precio_neto) + D(tx.tarifa_servicio)),
    })
    return row


def get_cuadre_records(db: Session) -> List[Dict[str, Any]]:
    """Registros de cuadre con los datos de su transaccion, los mas recientes primero."""
    rows = (db.query(Transaction, CuadreRecord)
            .join(CuadreRecord, CuadreRecord.transaction_id == Transaction.id)
            .order_by(Transaction.fecha.desc())
            .all())
    return [_joined(tx, rec) for tx, rec in rows]


def get_cuadre_record(db: Session, cuadre_id: str) -> Optional[Dict[str, Any]]:
    rec = db.get(CuadreRecord, cuadre_id)
    if rec is None:
        return None
    return _joined(rec.transaction, rec)


def cuadre_totals(rows: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    total = Decimal("0")
    monto = Decimal("0")
    for r in rows:
        total += D(r.get("totalCombinado"))
        monto += D(r.get("monto"))
    return {"totalCombinado": float(total), "monto": float(monto), "diferencia": float(monto - total)}


def group_by_asesor(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    ``[{"asesor", "fechas": [{"fecha", "records"}]}]``: asesores de la A a la Z,
    dias del mas reciente al mas viejo. Filas repetidas (mismo id) se ignoran.
    """
    seen = set()
    by_asesor: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
    for row in rows:
        if row["id"] in seen:
            continue
        seen.add(row["id"])
        asesor = row.get("asesor") or SIN_ASESOR
        key = get_date_key(parse_client_datetime(row["fecha"]))
        by_asesor.setdefault(asesor, {}).setdefault(key, []).append(row)

    out = []
    for asesor in sorted(by_asesor, key=str.lower):
        fechas = by_asesor[asesor]
        out.append({
            "asesor": asesor,
            "fechas": [{"fecha": k, "records": fechas[k]} for k in sorted(fechas, reverse=True)],
        })
    return out
