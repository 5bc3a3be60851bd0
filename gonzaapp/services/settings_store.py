# gonzaapp/services/settings_store.py
from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

from gonzaapp.config import settings as app_settings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "empresa": {"nombre": "GonzaApp", "ciudad": "", "nit": ""},
    "bancos": ["Bancolombia", "Nequi", "Daviplata", "Davivienda", "Banco de Bogotá", "Efectivo"],
    "tabla": {"refresh_segundos": 30, "tramite_por_defecto": "SOAT"},
}


def _path() -> Path:
    return Path(app_settings.SETTINGS_PATH)


def _defaults() -> dict:
    return copy.deepcopy(DEFAULT_SETTINGS)


def sanitize_settings(data: dict) -> dict:
    """Solo claves conocidas; lo que falte se completa con los valores por defecto."""
    out = _defaults()
    out["empresa"] = out["empresa"] | {k: str(v) for k, v in (data.get("empresa") or {}).items()
                                        if k in out["empresa"]}
    bancos = data.get("bancos")
    if isinstance(bancos, list):
        clean = [str(b).strip() for b in bancos if str(b).strip()]
        if clean:
            out["bancos"] = clean
    tabla = data.get("tabla") or {}
    try:
        refresh = int(tabla.get("refresh_segundos", out["tabla"]["refresh_segundos"]))
        out["tabla"]["refresh_segundos"] = max(refresh, 0)
    except (TypeError, ValueError):
        pass
    tramite = str(tabla.get("tramite_por_defecto") or "").strip()
    if tramite:
        out["tabla"]["tramite_por_defecto"] = tramite
    return out


def load_settings() -> dict:
    path = _path()
    if not path.exists():
        return _defaults()
    try:
        with path.open("r", encoding="utf-8") as f:
            return sanitize_settings(json.load(f))
    except (OSError, ValueError):
        # Archivo danado: se usan los valores por defecto
        logger.warning("Ajustes ilegibles en %s, usando valores por defecto", path, exc_info=True)
        return _defaults()


def save_settings(data: dict) -> dict:
    clean = sanitize_settings(data)
    path = _path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(clean, f, ensure_ascii=False, indent=2)
    return clean
