# gonzaapp/api_cuadre.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from gonzaapp.api_transacciones import read_json
from gonzaapp.models.base import get_db
from gonzaapp.services import boletas, cuadre

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cuadre"])

CACHE_CUADRE = "public, s-maxage=60, stale-while-revalidate=10"


def _write(result: dict) -> JSONResponse:
    return JSONResponse(result, status_code=200 if result.get("success") else 500)


# ---------- Cuadre ----------
@router.get("/api/cuadre")
def cuadre_list(db: Session = Depends(get_db)):
    try:
        data = cuadre.get_cuadre_records(db)
    except Exception:
        logger.exception("Error leyendo cuadre")
        return JSONResponse({"error": "Error fetching cuadre records"}, status_code=500)
    return JSONResponse(data, headers={"Cache-Control": CACHE_CUADRE})


@router.get("/api/cuadre/{cuadre_id}")
def cuadre_get(cuadre_id: str, db: Session = Depends(get_db)):
    try:
        row = cuadre.get_cuadre_record(db, cuadre_id)
    except Exception:
        logger.exception("Error leyendo cuadre %s", cuadre_id)
        return JSONResponse({"error": "Error fetching cuadre record"}, status_code=500)
    if row is None:
        return JSONResponse({"error": "No encontrado"}, status_code=404)
    return row


@router.post("/api/cuadre")
async def cuadre_create(request: Request, db: Session = Depends(get_db)):
    """``{"ids": [...]}`` crea uno por transaccion; si no, un registro con ``transactionId``."""
    payload = await read_json(request)
    if not isinstance(payload, dict):
        return JSONResponse({"success": False, "error": "Datos requeridos"}, status_code=400)
    if isinstance(payload.get("ids"), list):
        return _write(cuadre.create_cuadre_records(db, [i for i in payload["ids"] if isinstance(i, str)]))
    if not payload.get("transactionId"):
        return JSONResponse({"success": False, "error": "transactionId requerido"}, status_code=400)
    return _write(cuadre.create_cuadre_record(db, payload))


@router.put("/api/cuadre/{transaction_id}")
async def cuadre_update(transaction_id: str, request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    if not isinstance(payload, dict):
        return JSONResponse({"success": False, "error": "Datos requeridos"}, status_code=400)
    result = cuadre.update_cuadre_record(db, transaction_id, payload)
    if not result.get("success") and "no encontrado" in (result.get("error") or ""):
        return JSONResponse(result, status_code=404)
    return _write(result)


@router.delete("/api/cuadre")
async def cuadre_delete(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    ids = payload.get("ids") if isinstance(payload, dict) else None
    if not isinstance(ids, list) or not ids:
        return JSONResponse({"success": False, "error": "ids requeridos"}, status_code=400)
    return _write(cuadre.delete_cuadre_records(db, [i for i in ids if isinstance(i, str)]))


# ---------- Boletas pagadas ----------
@router.get("/api/boleta-payments")
def boleta_payments_list(db: Session = Depends(get_db)):
    try:
        return {"boletaPayments": boletas.list_boleta_payments(db)}
    except Exception:
        logger.exception("Error leyendo boletas")
        return JSONResponse({"error": "Error fetching boleta payments"}, status_code=500)


@router.post("/api/boleta-payments")
async def boleta_payments_create(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    if not isinstance(payload, dict) or boletas.validate_boleta_payload(payload):
        return JSONResponse({"success": False, "error": "Datos requeridos"}, status_code=400)
    created_by = request.session.get("usuario") or "A"
    result = boletas.create_boleta_payment(db, payload, created_by=created_by)
    if result.get("success"):
        return {"success": True}
    return JSONResponse(result, status_code=500)
