# gonzaapp/services/db_init.py
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from gonzaapp.models.base import Base, SessionLocal, engine
# Registra todos los modelos (import con efecto secundario)
import gonzaapp.models.entities  # noqa: F401
from gonzaapp.models.entities import Color, Novedad, Tramite
from gonzaapp.services.lookups import (
    DEFAULT_INTENSIDAD, INITIAL_COLORS, TRAMITE_COLORS, suggest_color_for_tramite
)
from gonzaapp.services.transactions import NOVEDAD_OPTIONS

logger = logging.getLogger(__name__)


def seed_colores(db: Session) -> int:
    existing = {n for (n,) in db.query(Color.nombre).all()}
    n = 0
    for nombre, valor in INITIAL_COLORS:
        if nombre not in existing:
            db.add(Color(nombre=nombre, valor=valor, intensidad=DEFAULT_INTENSIDAD))
            n += 1
    return n


def seed_tramites(db: Session) -> int:
    """Tramites conocidos con su color; a los que no tienen color se les sugiere uno."""
    rows = {t.nombre: t for t in db.query(Tramite).all()}
    n = 0
    for nombre, color in TRAMITE_COLORS.items():
        if nombre not in rows:
            db.add(Tramite(nombre=nombre, color=color))
            n += 1
    for t in rows.values():
        if not t.color:
            t.color = suggest_color_for_tramite(t.nombre)
            logger.info("Color '%s' asignado al tramite '%s'", t.color, t.nombre)
    return n


def seed_novedades(db: Session) -> int:
    existing = {n for (n,) in db.query(Novedad.nombre).all()}
    n = 0
    for nombre in NOVEDAD_OPTIONS:
        if nombre not in existing:
            db.add(Novedad(nombre=nombre))
            n += 1
    return n


def init_db(seed: bool = True) -> None:
    """
    Crea las tablas y, opcionalmente, carga los catalogos iniciales.
    Se llama al arrancar desde main.py.
    """
    Base.metadata.create_all(bind=engine)

    if seed:
        with SessionLocal() as db:
            counts = (seed_colores(db), seed_tramites(db), seed_novedades(db))
            db.commit()
        if any(counts):
            logger.info("Catalogos iniciales: %d colores, %d tramites, %d novedades", *counts)
