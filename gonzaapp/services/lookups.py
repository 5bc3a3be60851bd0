# gonzaapp/services/lookups.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gonzaapp.models.entities import Asesor, Color, EmitidoPor, Novedad, Tramite

logger = logging.getLogger(__name__)

Result = Dict[str, Any]

# ---------- Paleta ----------
INITIAL_COLORS = (
    ("azul", "blue"),
    ("verde-lima", "lime"),
    ("purpura", "purple"),
    ("naranja", "orange"),
    ("verde-azulado", "teal"),
    ("rojo", "red"),
    ("verde", "green"),
    ("amarillo", "yellow"),
    ("rosa", "pink"),
    ("gris", "gray"),
    ("indigo", "indigo"),
    ("cian", "cyan"),
)
DEFAULT_INTENSIDAD = 400

TRAMITE_COLORS = {
    "LICENCIA": "azul",
    "RENOVACION": "verde-lima",
    "STREAMING": "purpura",
    "AFILIACION SEGURIDAD SOCIAL": "naranja",
    "CERTIFICADO DE TRADICION V": "verde-azulado",
    "SOAT": "verde",
}


def suggest_color_for_tramite(nombre: str) -> str:
    """Color conocido para el tramite; si no, uno fijo de la paleta segun el nombre."""
    key = (nombre or "").strip().upper()
    if key in TRAMITE_COLORS:
        return TRAMITE_COLORS[key]
    free = [n for n, _ in INITIAL_COLORS if n not in TRAMITE_COLORS.values()]
    return free[sum(ord(c) for c in key) % len(free)]


# ---------- Helpers ----------
def _clean(nombre: Optional[str]) -> str:
    if not isinstance(nombre, str) or not nombre.strip():
        raise ValueError("Nombre requerido")
    return nombre.strip()


def _fail(db: Session, msg: str, exc: Exception) -> Result:
    db.rollback()
    if isinstance(exc, IntegrityError):
        logger.warning("%s: ya existe", msg)
        return {"success": False, "error": f"{msg}: ya existe"}
    logger.error("%s: %s", msg, exc, exc_info=True)
    return {"success": False, "error": str(exc) or msg}


def _names(db: Session, model: Type) -> List[str]:
    return [row.nombre for row in db.query(model).order_by(model.nombre).all()]


def _add(db: Session, model: Type, label: str, **values) -> Result:
    try:
        nombre = _clean(values.pop("nombre", None))
        db.add(model(nombre=nombre, **values))
        db.commit()
    except (SQLAlchemyError, ValueError) as e:
        return _fail(db, f"Error al agregar {label}", e)
    logger.info("%s agregado: %s", label, nombre)
    return {"success": True}


def _by_name(db: Session, model: Type, nombre: str):
    return db.query(model).filter(model.nombre == nombre).first()


def _update_color(db: Session, model: Type, label: str, nombre: Optional[str],
                  color: Optional[str]) -> Result:
    try:
        nombre = _clean(nombre)
        row = _by_name(db, model, nombre)
        if row is None:
            return {"success": False, "error": f"{label} no encontrado"}
        row.color = color
        db.commit()
    except (SQLAlchemyError, ValueError) as e:
        return _fail(db, f"Error al actualizar {label}", e)
    return {"success": True}


def _delete(db: Session, model: Type, label: str, nombre: Optional[str]) -> Result:
    try:
        nombre = _clean(nombre)
        row = _by_name(db, model, nombre)
        if row is None:
            return {"success": False, "error": f"{label} no encontrado"}
        db.delete(row)
        db.commit()
    except (SQLAlchemyError, ValueError) as e:
        return _fail(db, f"Error al eliminar {label}", e)
    logger.info("%s eliminado: %s", label, nombre)
    return {"success": True}


# ---------- Asesores ----------
def get_all_asesores(db: Session) -> List[str]:
    return _names(db, Asesor)


def add_asesor(db: Session, nombre: str) -> Result:
    return _add(db, Asesor, "asesor", nombre=nombre)


# ---------- Tramites ----------
def get_all_tramites(db: Session) -> List[Dict[str, Any]]:
    return [{"nombre": t.nombre, "color": t.color}
            for t in db.query(Tramite).order_by(Tramite.nombre).all()]


def add_tramite(db: Session, nombre: str, color: Optional[str] = None) -> Result:
    if color is None and isinstance(nombre, str) and nombre.strip():
        color = suggest_color_for_tramite(nombre)
    return _add(db, Tramite, "tramite", nombre=nombre, color=color)


def update_tramite(db: Session, nombre: str, color: Optional[str] = None) -> Result:
    return _update_color(db, Tramite, "tramite", nombre, color)


def delete_tramite(db: Session, nombre: str) -> Result:
    return _delete(db, Tramite, "tramite", nombre)


# ---------- Emitido por ----------
def get_all_emitido_por(db: Session) -> List[str]:
    return _names(db, EmitidoPor)


def get_all_emitido_por_with_colors(db: Session) -> List[Dict[str, Any]]:
    return [{"nombre": e.nombre, "color": e.color}
            for e in db.query(EmitidoPor).order_by(EmitidoPor.nombre).all()]


def add_emitido_por(db: Session, nombre: str, color: Optional[str] = None) -> Result:
    return _add(db, EmitidoPor, "emitidoPor", nombre=nombre, color=color)


def update_emitido_por(db: Session, nombre: str, color: Optional[str] = None) -> Result:
    return _update_color(db, EmitidoPor, "emitidoPor", nombre, color)


def delete_emitido_por(db: Session, nombre: str) -> Result:
    return _delete(db, EmitidoPor, "emitidoPor", nombre)


# ---------- Novedades ----------
def get_all_novedades(db: Session) -> List[str]:
    return _names(db, Novedad)


def add_novedad(db: Session, nombre: str) -> Result:
    return _add(db, Novedad, "novedad", nombre=nombre)


# ---------- Colores ----------
def get_all_colores(db: Session) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in db.query(Color).order_by(Color.nombre).all()]


def add_color(db: Session, nombre: str, valor: str, intensidad: int = DEFAULT_INTENSIDAD) -> Result:
    if not isinstance(valor, str) or not valor.strip():
        return {"success": False, "error": "Valor de color requerido"}
    return _add(db, Color, "color", nombre=nombre, valor=valor.strip(), intensidad=intensidad)
