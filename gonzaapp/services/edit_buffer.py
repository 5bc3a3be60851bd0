# gonzaapp/services/edit_buffer.py
"""
Buffer de ediciones de la tabla de transacciones.

Cada cambio de celda ``(fila, campo, valor)`` se mezcla en el mapa de
ediciones de la fila y reinicia una ventana de espera; al vencer se guardan
todas las filas editadas como registros completos (base + ediciones).

Estados por fila::

    CLEAN -> EDITING -> SAVING -> CLEAN
                 ^         |
                 +---------+   (nueva edicion durante el guardado, o error)

Las ediciones se conservan hasta que los datos de la base coinciden con
ellas; si dos pestañas editan la misma fila gana la ultima escritura.
"""
from __future__ import annotations

import enum
import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from gonzaapp.config import settings as app_settings
from gonzaapp.services.dates import parse_client_datetime
from gonzaapp.services.formulas import calculate_formulas
from gonzaapp.services.soat import calculate_soat_price
from gonzaapp.services.transactions import to_bool, to_number

logger = logging.getLogger(__name__)

NUMERIC_EDIT_FIELDS = (
    "precioNeto",
    "tarifaServicio",
    "impuesto4x1000",
    "gananciaBruta",
    "boletasRegistradas",
    "cilindraje",
)
BOOL_EDIT_FIELDS = ("pagado", "boleta", "comisionExtra", "rappi")
SOAT_TRIGGER_FIELDS = ("tipoVehiculo", "cilindraje")

Record = Dict[str, Any]
SaveFn = Callable[[List[Record]], Dict[str, Any]]
LoadFn = Callable[[List[str]], List[Record]]


class RowState(enum.Enum):
    CLEAN = "clean"
    EDITING = "editing"
    SAVING = "saving"


def _plain_number(value: Decimal):
    return int(value) if value == value.to_integral_value() else float(value)


def coerce_edit(field: str, value: Any) -> Any:
    if field in NUMERIC_EDIT_FIELDS:
        return _plain_number(to_number(value))
    if field in BOOL_EDIT_FIELDS:
        return to_bool(value)
    return value


def _same(field: str, local: Any, remote: Any) -> bool:
    if field in NUMERIC_EDIT_FIELDS:
        return to_number(local) == to_number(remote)
    if field in BOOL_EDIT_FIELDS:
        return to_bool(local) == to_bool(remote)
    if field == "fecha":
        a = local if isinstance(local, datetime) else parse_client_datetime(local)
        b = remote if isinstance(remote, datetime) else parse_client_datetime(remote)
        if a is None or b is None:
            return a == b
        return a.replace(microsecond=0) == b.replace(microsecond=0)
    return (local or "") == (remote or "")


class EditBuffer:
    def __init__(self, save_fn: SaveFn, load_fn: LoadFn, delay: Optional[float] = None):
        self.save_fn = save_fn
        self.load_fn = load_fn
        self.delay = app_settings.SAVE_DEBOUNCE_SECONDS if delay is None else delay
        self.last_error: Optional[str] = None

        self._edits: Dict[str, Record] = {}
        self._states: Dict[str, RowState] = {}
        self._versions: Dict[str, int] = {}
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()

    # --- consulta ---------------------------------------------------------

    def state(self, row_id: str) -> RowState:
        with self._lock:
            return self._states.get(row_id, RowState.CLEAN)

    def pending(self) -> Dict[str, Record]:
        with self._lock:
            return {rid: dict(edits) for rid, edits in self._edits.items()}

    def overlay(self, records: Iterable[Record]) -> List[Record]:
        """Registros con las ediciones pendientes encima y los campos derivados al dia."""
        with self._lock:
            edits = {rid: dict(e) for rid, e in self._edits.items()}
        out = []
        for rec in records:
            pending = edits.get(rec.get("id"))
            if not pending:
                out.append(rec)
                continue
            merged = {**rec, **pending}
            f = calculate_formulas(merged)
            merged["impuesto4x1000"] = float(f["impuesto4x1000"])
            merged["gananciaBruta"] = float(f["gananciaBruta"])
            out.append(merged)
        return out

    # --- edicion ----------------------------------------------------------

    def _base_value(self, row_id: str, field: str) -> Any:
        rows = self.load_fn([row_id])
        return rows[0].get(field) if rows else None

    def apply_edit(self, row_id: str, field: str, value: Any) -> Record:
        """Mezcla una edicion y reinicia la espera. Devuelve las ediciones de la fila."""
        value = coerce_edit(field, value)

        extra: Record = {}
        if field in SOAT_TRIGGER_FIELDS:
            with self._lock:
                prev = dict(self._edits.get(row_id, {}))
            if field == "tipoVehiculo":
                tipo = value
            elif "tipoVehiculo" in prev:
                tipo = prev["tipoVehiculo"]
            else:
                tipo = self._base_value(row_id, "tipoVehiculo")
            if tipo:
                if field == "cilindraje":
                    cil = value
                elif "cilindraje" in prev:
                    cil = prev["cilindraje"]
                else:
                    cil = self._base_value(row_id, "cilindraje")
                price = calculate_soat_price(tipo, cil)
                if price > 0:
                    extra["precioNeto"] = price

        with self._lock:
            edits = self._edits.setdefault(row_id, {})
            edits[field] = value
            edits.update(extra)
            self._versions[row_id] = self._versions.get(row_id, 0) + 1
            self._states[row_id] = RowState.EDITING
            self._schedule_locked()
            logger.debug("Edicion %s.%s=%r", row_id, field, value)
            return dict(edits)

    def _schedule_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self.delay, self._on_timer)
        self._timer.daemon = True
        self._timer.start()

    def _on_timer(self) -> None:
        self.flush()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    # --- guardado ---------------------------------------------------------

    def flush(self) -> Optional[Dict[str, Any]]:
        """Guarda ya todas las filas editadas. ``None`` si no habia nada pendiente."""
        with self._save_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                if not self._edits:
                    return None
                snapshot = {rid: dict(e) for rid, e in self._edits.items()}
                versions = {rid: self._versions.get(rid, 0) for rid in snapshot}
                for rid in snapshot:
                    self._states[rid] = RowState.SAVING

            ids = list(snapshot)
            base = {r["id"]: r for r in self.load_fn(ids)}
            records = [{**base[rid], **edits, "id": rid} for rid, edits in snapshot.items() if rid in base]

            gone = [rid for rid in ids if rid not in base]
            if gone:
                logger.info("Se descartan ediciones de filas eliminadas: %s", gone)
                with self._lock:
                    for rid in gone:
                        self._drop_locked(rid)

            try:
                result = self.save_fn(records) if records else {"success": True}
            except Exception as e:  # hilo del temporizador: no hay quien reciba la excepcion
                logger.exception("Error guardando ediciones")
                result = {"success": False, "error": str(e) or "Error guardando cambios"}

            if not result.get("success"):
                with self._lock:
                    self.last_error = result.get("error") or "Error guardando cambios"
                    for rid in snapshot:
                        if rid in self._edits:
                            self._states[rid] = RowState.EDITING
                logger.error("No se guardaron %d filas: %s", len(records), self.last_error)
                return result

            with self._lock:
                self.last_error = None
                saved = [rid for rid in snapshot
                         if rid in self._edits and self._versions.get(rid) == versions[rid]]
            if saved:
                self._settle(self.load_fn(saved), saved)
            return result

    def _drop_locked(self, row_id: str) -> None:
        self._edits.pop(row_id, None)
        self._versions.pop(row_id, None)
        self._states[row_id] = RowState.CLEAN

    def _settle(self, remote: List[Record], saved: List[str]) -> None:
        # Solo se liberan las filas cuya version en la base ya coincide
        by_id = {r["id"]: r for r in remote}
        with self._lock:
            for rid in saved:
                edits = self._edits.get(rid)
                if edits is None or self._states.get(rid) != RowState.SAVING:
                    continue
                row = by_id.get(rid)
                if row is not None and all(_same(f, v, row.get(f)) for f, v in edits.items()):
                    self._drop_locked(rid)
                    continue
                logger.info("Fila %s no coincide con la base tras guardar; se conservan las ediciones", rid)
                self._states[rid] = RowState.EDITING

    def reconcile(self, remote_records: Iterable[Record]) -> List[str]:
        """
        Compara con datos recien leidos (p. ej. tras un broadcast) y libera las
        filas cuyas ediciones ya estan en la base. Devuelve los ids liberados.
        """
        released = []
        with self._lock:
            for row in remote_records:
                rid = row.get("id")
                edits = self._edits.get(rid)
                if not edits or self._states.get(rid) == RowState.SAVING:
                    continue
                if all(_same(f, v, row.get(f)) for f, v in edits.items()):
                    self._drop_locked(rid)
                    released.append(rid)
            if not self._edits and self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return released
