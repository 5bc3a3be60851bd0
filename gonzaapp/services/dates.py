"""
Conversion de fechas a la hora de Colombia (America/Bogota).

Unico punto de conversion: las fechas se guardan en UTC sin tzinfo y toda
agrupacion por dia (clave ``YYYY-MM-DD``) o fecha mostrada pasa por aqui.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

from gonzaapp.config import settings as app_settings

COLOMBIA_TZ = ZoneInfo(app_settings.TIMEZONE)

DIAS = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
MESES = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)


def utc_now() -> datetime:
    """Ahora en UTC sin tzinfo (formato de almacenamiento)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def colombia_now() -> datetime:
    return datetime.now(COLOMBIA_TZ)


def to_colombia(dt: datetime) -> datetime:
    """Convierte a America/Bogota. Un datetime sin tzinfo se toma como UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(COLOMBIA_TZ)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def get_date_key(dt: datetime) -> str:
    """Clave de agrupacion ``YYYY-MM-DD`` segun el dia en Colombia."""
    return to_colombia(dt).strftime("%Y-%m-%d")


def parse_date_key(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def day_bounds_utc(day: Union[str, date]) -> Tuple[datetime, datetime]:
    """Inicio (incluido) y fin (excluido) del dia colombiano, en UTC sin tzinfo."""
    if isinstance(day, str):
        day = parse_date_key(day)
    start = datetime.combine(day, time.min, tzinfo=COLOMBIA_TZ)
    end = start + timedelta(days=1)
    return to_utc_naive(start), to_utc_naive(end)


def format_colombia_date(dt: Union[datetime, date], upper: bool = True) -> str:
    """
    Fecha larga en espanol, p. ej. ``LUNES, 15 DE ENERO DE 2024``.
    Con ``upper=False`` solo la primera letra va en mayuscula.
    """
    if isinstance(dt, datetime):
        d = to_colombia(dt).date()
    else:
        d = dt
    text = f"{DIAS[d.weekday()]}, {d.day} de {MESES[d.month - 1]} de {d.year}"
    if upper:
        return text.upper()
    return text[:1].upper() + text[1:]


def format_date_key(key: str, upper: bool = False) -> str:
    return format_colombia_date(parse_date_key(key), upper=upper)


def parse_client_datetime(value) -> Optional[datetime]:
    """
    Fecha enviada por el navegador -> UTC sin tzinfo.

    Cadenas con zona (``...Z``, ``-05:00``) se convierten a UTC; cadenas sin zona
    (``datetime-local``, ``YYYY-MM-DD``) se interpretan como hora de Colombia.
    Un ``datetime`` sin tzinfo ya esta en UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if isinstance(value, date):
        value = value.isoformat()
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=COLOMBIA_TZ)
    return to_utc_naive(dt)
