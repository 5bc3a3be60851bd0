# gonzaapp/api_catalogos.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from gonzaapp.api_transacciones import read_json
from gonzaapp.models.base import get_db
from gonzaapp.services import lookups

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Catalogos"])

CACHE_ASESORES = "public, s-maxage=300, stale-while-revalidate=600"
CACHE_CATALOGO = "public, s-maxage=300, stale-while-revalidate=3600"
CACHE_COLORES = "public, s-maxage=600, stale-while-revalidate=3600"


def _listing(key: str, fn, db: Session, cache: str) -> JSONResponse:
    try:
        data = fn(db)
    except Exception:
        logger.exception("Error leyendo %s", key)
        return JSONResponse({key: [], "error": f"Error fetching {key}"}, status_code=500)
    return JSONResponse({key: data}, headers={"Cache-Control": cache})


def _nombre(payload) -> str | None:
    nombre = payload.get("nombre") if isinstance(payload, dict) else None
    if not isinstance(nombre, str) or not nombre.strip():
        return None
    return nombre.strip()


def _color(payload) -> str | None:
    color = payload.get("color")
    return color if isinstance(color, str) else None


def _nombre_requerido() -> JSONResponse:
    return JSONResponse({"success": False, "error": "Nombre requerido"}, status_code=400)


def _write(result: dict) -> JSONResponse:
    if result.get("success"):
        return JSONResponse({"success": True})
    return JSONResponse({"success": False, "error": result.get("error")}, status_code=500)


# ---------- Asesores ----------
@router.get("/api/asesores")
def asesores_list(db: Session = Depends(get_db)):
    return _listing("asesores", lookups.get_all_asesores, db, CACHE_ASESORES)


@router.post("/api/asesores")
async def asesores_add(request: Request, db: Session = Depends(get_db)):
    nombre = _nombre(await read_json(request))
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.add_asesor(db, nombre))


# ---------- Tramites ----------
@router.get("/api/tramites")
def tramites_list(db: Session = Depends(get_db)):
    return _listing("tramites", lookups.get_all_tramites, db, CACHE_CATALOGO)


@router.post("/api/tramites")
async def tramites_add(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    nombre = _nombre(payload)
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.add_tramite(db, nombre, _color(payload)))


@router.put("/api/tramites")
async def tramites_update(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    nombre = _nombre(payload)
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.update_tramite(db, nombre, _color(payload)))


@router.delete("/api/tramites")
async def tramites_delete(request: Request, db: Session = Depends(get_db)):
    nombre = _nombre(await read_json(request))
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.delete_tramite(db, nombre))


# ---------- Emitido por ----------
@router.get("/api/emitidoPor")
def emitido_por_list(db: Session = Depends(get_db)):
    return _listing("emitidoPor", lookups.get_all_emitido_por, db, CACHE_CATALOGO)


@router.get("/api/emitidoPorWithColors")
def emitido_por_colors(db: Session = Depends(get_db)):
    return _listing("emitidoPorWithColors", lookups.get_all_emitido_por_with_colors, db, CACHE_CATALOGO)


@router.post("/api/emitidoPor")
async def emitido_por_add(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    nombre = _nombre(payload)
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.add_emitido_por(db, nombre, _color(payload)))


@router.put("/api/emitidoPor")
async def emitido_por_update(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    nombre = _nombre(payload)
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.update_emitido_por(db, nombre, _color(payload)))


@router.delete("/api/emitidoPor")
async def emitido_por_delete(request: Request, db: Session = Depends(get_db)):
    nombre = _nombre(await read_json(request))
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.delete_emitido_por(db, nombre))


# ---------- Novedades ----------
@router.get("/api/novedades")
def novedades_list(db: Session = Depends(get_db)):
    return _listing("novedades", lookups.get_all_novedades, db, CACHE_CATALOGO)


@router.post("/api/novedades")
async def novedades_add(request: Request, db: Session = Depends(get_db)):
    nombre = _nombre(await read_json(request))
    if nombre is None:
        return _nombre_requerido()
    return _write(lookups.add_novedad(db, nombre))


# ---------- Colores ----------
@router.get("/api/colores")
def colores_list(db: Session = Depends(get_db)):
    return _listing("colores", lookups.get_all_colores, db, CACHE_COLORES)


@router.post("/api/colores")
async def colores_add(request: Request, db: Session = Depends(get_db)):
    payload = await read_json(request)
    nombre = _nombre(payload)
    if nombre is None:
        return _nombre_requerido()
    valor = payload.get("valor")
    if not isinstance(valor, str) or not valor.strip():
        return JSONResponse({"success": False, "error": "Valor de color requerido"}, status_code=400)
    intensidad = payload.get("intensidad")
    if isinstance(intensidad, bool) or not isinstance(intensidad, int):
        intensidad = lookups.DEFAULT_INTENSIDAD
    return _write(lookups.add_color(db, nombre, valor.strip(), intensidad))
