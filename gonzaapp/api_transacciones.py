# gonzaapp/api_transacciones.py
from __future__ import annotations

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from gonzaapp.models.base import SessionLocal, get_db
from gonzaapp.services import transactions as tx_service
from gonzaapp.services.edit_buffer import EditBuffer
from gonzaapp.services.soat import calculate_soat_price, get_available_vehicle_types

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Transacciones"])

# se recalculan al guardar; no se editan a mano
CALCULATED_FIELDS = ("impuesto4x1000", "gananciaBruta")


# ---------- Buffer de ediciones (uno por proceso) ----------
def _save_records(records: List[dict]) -> dict:
    with SessionLocal() as db:
        return tx_service.update_records(db, records)


def _load_records(ids: List[str]) -> List[dict]:
    with SessionLocal() as db:
        return [t.to_dict() for t in tx_service.get_transactions_by_ids(db, ids)]


edit_buffer = EditBuffer(save_fn=_save_records, load_fn=_load_records)


async def read_json(request: Request) -> Any:
    """Cuerpo JSON o ``None`` si no se puede leer."""
    try:
        return await request.json()
    except ValueError:
        return None


def _ids(payload: Any) -> List[str]:
    if isinstance(payload, dict) and isinstance(payload.get("ids"), list):
        return [i for i in payload["ids"] if isinstance(i, str)]
    return []


def _result(result: dict, ok_status: int = 200) -> JSONResponse:
    return JSONResponse(result, status_code=ok_status if result.get("success") else 500)


# ---------- Lecturas ----------
@router.get("/api/transactions")
def transactions_page(date: str | None = None, limit: int = 100, offset: int = 0,
                      db: Session = Depends(get_db)):
    if not date or not tx_service.DATE_KEY_RE.match(date):
        return JSONResponse({"error": "Debe enviar el parámetro date=YYYY-MM-DD"}, status_code=400)
    try:
        rows, total = tx_service.get_transactions_paginated(db, date, limit, offset)
    except Exception:
        logger.exception("Error leyendo transacciones del %s", date)
        return JSONResponse({"error": "Error fetching transactions"}, status_code=500)
    data = edit_buffer.overlay([r.to_dict() for r in rows])
    return {"data": data, "total": total}


@router.get("/api/transactions/summary")
def transactions_summary(db: Session = Depends(get_db)):
    try:
        return tx_service.get_transactions_summary(db)
    except Exception:
        logger.exception("Error calculando totales")
        return JSONResponse({"error": "Error fetching transactions summary"}, status_code=500)


@router.post("/api/transactions/by-ids")
async def transactions_by_ids(request: Request, db: Session = Depends(get_db)):
    ids = _ids(await read_json(request))
    if not ids:
        return []
    try:
        rows = tx_service.get_transactions_by_ids(db, ids)
    except Exception:
        logger.exception("Error en /api/transactions/by-ids")
        return []
    return edit_buffer.overlay([r.to_dict() for r in rows])


# ---------- Escrituras ----------
@router.post("/api/transactions")
async def transactions_create(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    if payload is not None and not isinstance(payload, dict):
        return JSONResponse({"success": False, "error": "Formato inválido"}, status_code=400)
    return _result(tx_service.create_record(db, payload or {}))


@router.put("/api/transactions")
async def transactions_update(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    records = payload.get("records") if isinstance(payload, dict) else payload
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        return JSONResponse({"success": False, "error": "Se esperaba una lista de registros"}, status_code=400)
    return _result(tx_service.update_records(db, records))


@router.delete("/api/transactions")
async def transactions_delete(request: Request, db: Session = Depends(get_db)):
    ids = _ids(await read_json(request))
    if not ids:
        return JSONResponse({"success": False, "error": "ids requeridos"}, status_code=400)
    return _result(tx_service.delete_records(db, ids))


@router.post("/api/transactions/pay")
async def transactions_pay(request: Request, db: Session = Depends(get_db)):
    ids = _ids(await read_json(request))
    if not ids:
        return JSONResponse({"success": False, "error": "ids requeridos"}, status_code=400)
    # lo pendiente primero, para pagar sobre los valores que ve el usuario
    edit_buffer.flush()
    return _result(tx_service.pay_selected(db, ids))


# ---------- Edicion de celdas ----------
@router.post("/api/transactions/edit")
async def transactions_edit(request: Request):
    payload = await read_json(request)
    if not isinstance(payload, dict) or not payload.get("id") or not payload.get("field"):
        return JSONResponse({"success": False, "error": "id y field requeridos"}, status_code=400)
    field = payload["field"]
    if field not in tx_service.TRANSACTION_FIELDS or field == "id":
        return JSONResponse({"success": False, "error": f"Campo desconocido: {field}"}, status_code=400)
    if field in CALCULATED_FIELDS:
        return JSONResponse({"success": False, "error": f"Campo calculado: {field}"}, status_code=400)
    edits = edit_buffer.apply_edit(payload["id"], field, payload.get("value"))
    return {"success": True, "id": payload["id"], "edits": edits,
            "state": edit_buffer.state(payload["id"]).value}


@router.post("/api/transactions/flush")
def transactions_flush():
    result = edit_buffer.flush()
    if result is None:
        return {"success": True, "saved": 0}
    return _result(result)


@router.get("/api/transactions/pending")
def transactions_pending():
    pending = edit_buffer.pending()
    return {
        "pending": pending,
        "states": {rid: edit_buffer.state(rid).value for rid in pending},
        "lastError": edit_buffer.last_error,
    }


# ---------- SOAT ----------
@router.get("/api/soat/price")
def soat_price(tipoVehiculo: str = "", cilindraje: int | None = None):
    return {"tipoVehiculo": tipoVehiculo, "cilindraje": cilindraje,
            "precio": calculate_soat_price(tipoVehiculo, cilindraje)}


@router.get("/api/soat/vehicle-types")
def soat_vehicle_types():
    return {"vehicleTypes": get_available_vehicle_types()}
