# gonzaapp/services/filters.py
"""
Agrupacion y filtros en memoria para la tabla de transacciones y la de totales.

Trabajan sobre los dicts camelCase de ``Transaction.to_dict()`` (ya con las
ediciones pendientes superpuestas), no sobre la base.
"""
from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from gonzaapp.services.dates import format_date_key, get_date_key, parse_client_datetime, to_colombia

Record = Dict[str, Any]

_STRIP_RE = re.compile(r"[$.,\-\s]")

# columna de la tabla de totales -> palabras que la identifican en la busqueda
TOTALS_COLUMN_KEYWORDS = (
    ("fecha", ("fecha", "dia")),
    ("transactionCount", ("transacciones", "cantidad")),
    ("precioNetoTotal", ("precio neto", "precio", "neto")),
    ("tarifaServicioTotal", ("tarifa servicio", "tarifa", "servicio")),
    ("impuesto4x1000Total", ("4x1000", "impuesto", "cuatro", "mil")),
    ("gananciaBrutaTotal", ("ganancia bruta", "ganancia", "bruta")),
)


def _fecha(record: Record) -> Optional[datetime]:
    value = record.get("fecha")
    if value is None or value == "":
        return None
    return parse_client_datetime(value)


def _sort_key(record: Record) -> datetime:
    return _fecha(record) or datetime.min


def normalize_text(text: str) -> str:
    """Sin tildes, sin ``$ . , -`` ni espacios, en minusculas."""
    decomposed = unicodedata.normalize("NFD", str(text))
    no_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _STRIP_RE.sub("", no_marks).lower()


def format_currency(amount: Union[int, float, Decimal, None]) -> str:
    """Pesos sin decimales con punto de miles: ``$ 1.200.000``."""
    value = Decimal(str(amount or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}$ {abs(int(value)):,}".replace(",", ".")


def group_by_date(records: Iterable[Record]) -> List[Tuple[str, List[Record]]]:
    """
    Agrupa por dia colombiano. Devuelve ``[(clave, filas), ...]`` con el dia mas
    reciente primero y las filas de cada dia de la mas nueva a la mas vieja.
    """
    groups: Dict[str, List[Record]] = {}
    for rec in records:
        fecha = _fecha(rec)
        if fecha is None:
            continue
        groups.setdefault(get_date_key(fecha), []).append(rec)
    out = []
    for key in sorted(groups, reverse=True):
        rows = sorted(groups[key], key=_sort_key, reverse=True)
        out.append((key, rows))
    return out


def search_records(records: Iterable[Record], term: Optional[str]) -> List[Record]:
    """Subcadena sin distinguir mayusculas en cualquier campo no nulo salvo ``fecha``."""
    records = list(records)
    if not term:
        return records
    needle = term.lower()
    out = []
    for rec in records:
        for key, value in rec.items():
            if key == "fecha" or value is None:
                continue
            if needle in _as_text(value).lower():
                out.append(rec)
                break
    return out


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_colombia(value).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def date_range(start, end) -> Optional[Tuple[date, date]]:
    """
    ``(desde, hasta)`` ordenado, o ``None`` si falta un extremo o alguno no es
    una fecha: en ese caso no se filtra.
    """
    d0, d1 = _as_date(start), _as_date(end)
    if d0 is None or d1 is None:
        return None
    return (d0, d1) if d0 <= d1 else (d1, d0)


def filter_totals_by_date_range(totals: Iterable[Record], start, end) -> List[Record]:
    """Filas de totales (clave ``date``) dentro del rango, con las mismas reglas que la tabla."""
    totals = list(totals)
    rng = date_range(start, end)
    if rng is None:
        return totals
    out = []
    for t in totals:
        day = _as_date(t.get("date"))
        if day is not None and rng[0] <= day <= rng[1]:
            out.append(t)
    return out


def filter_by_date_range(records: Iterable[Record], start, end) -> List[Record]:
    """Filas cuyo dia colombiano cae entre ``start`` y ``end`` (ambos incluidos)."""
    records = list(records)
    rng = date_range(start, end)
    if rng is None:
        return records
    d0, d1 = rng
    out = []
    for rec in records:
        fecha = _fecha(rec)
        if fecha is None:
            continue
        if d0 <= to_colombia(fecha).date() <= d1:
            out.append(rec)
    return out


def page_for_date(groups: List[Tuple[str, List[Record]]], date_key: Optional[str]) -> int:
    """Pagina (desde 1) en la que esta el dia; 1 si no aparece."""
    if not date_key:
        return 1
    for idx, (key, _rows) in enumerate(groups):
        if key == date_key:
            return idx + 1
    return 1


def search_totals(totals: Iterable[Record], term: Optional[str]) -> List[Record]:
    """
    Busqueda en la tabla de totales por dia. Si el termino nombra una columna
    (``impuesto``, ``tarifa``...) solo se busca en esa; si no, en todas.
    """
    totals = list(totals)
    if not term:
        return totals
    search = normalize_text(term)
    column = None
    for key, keywords in TOTALS_COLUMN_KEYWORDS:
        if any(normalize_text(k) in search for k in keywords):
            column = key
            break

    out = []
    for row in totals:
        texts = {
            "fecha": normalize_text(format_date_key(row["date"])),
            "transactionCount": normalize_text(str(row["transactionCount"])),
            "precioNetoTotal": normalize_text(format_currency(row["precioNetoTotal"])),
            "tarifaServicioTotal": normalize_text(format_currency(row["tarifaServicioTotal"])),
            "impuesto4x1000Total": normalize_text(format_currency(row["impuesto4x1000Total"])),
            "gananciaBrutaTotal": normalize_text(format_currency(row["gananciaBrutaTotal"])),
        }
        if column is not None:
            # "impuesto 400" busca 400 en la columna de impuesto
            rest = search
            for k in dict(TOTALS_COLUMN_KEYWORDS)[column]:
                rest = rest.replace(normalize_text(k), "")
            if not rest or rest in texts[column]:
                out.append(row)
        elif any(search in t for t in texts.values()):
            out.append(row)
    return out
