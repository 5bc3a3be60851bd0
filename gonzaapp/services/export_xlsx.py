# gonzaapp/services/export_xlsx.py
# Exportacion de la tabla de transacciones a Excel
from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Any, Dict, Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from gonzaapp.services.dates import parse_client_datetime, to_colombia
from gonzaapp.services.formulas import calculate_formulas

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Registros"
NO_DATA = "No hay datos para exportar en el rango de fechas seleccionado"

# (encabezado, ancho en caracteres)
COLUMNS = (
    ("Fecha", 20),
    ("Trámite", 15),
    ("Pagado", 8),
    ("Boletas Registradas", 15),
    ("Emitido Por", 15),
    ("Placa", 10),
    ("Tipo Documento", 12),
    ("Número Documento", 15),
    ("Nombre", 30),
    ("Cilindraje", 10),
    ("Tipo Vehículo", 15),
    ("Celular", 12),
    ("Ciudad", 15),
    ("Asesor", 20),
    ("Novedad", 20),
    ("Precio Neto", 12),
    ("Comisión Extra", 12),
    ("Tarifa Servicio", 12),
    ("4x1000", 10),
    ("Ganancia Bruta", 12),
    ("Rappi", 8),
    ("Observaciones", 40),
)


def _si_no(value: Any) -> str:
    return "Sí" if value else "No"


def _fecha(value: Any) -> str:
    dt = parse_client_datetime(value)
    return to_colombia(dt).strftime("%d/%m/%Y %H:%M") if dt else ""


def export_row(record: Dict[str, Any]) -> List[Any]:
    """Fila de la hoja: precio neto con la comision extra y 4x1000 recalculados."""
    f = calculate_formulas(record)
    return [
        _fecha(record.get("fecha")),
        record.get("tramite"),
        _si_no(record.get("pagado")),
        record.get("boletasRegistradas"),
        record.get("emitidoPor"),
        (record.get("placa") or "").upper(),
        record.get("tipoDocumento"),
        record.get("numeroDocumento"),
        record.get("nombre"),
        record.get("cilindraje"),
        record.get("tipoVehiculo"),
        record.get("celular"),
        record.get("ciudad"),
        record.get("asesor"),
        record.get("novedad"),
        float(f["precioNetoAjustado"]),
        _si_no(record.get("comisionExtra")),
        record.get("tarifaServicio"),
        float(f["impuesto4x1000"]),
        float(f["gananciaBruta"]),
        _si_no(record.get("rappi")),
        record.get("observaciones"),
    ]


def sort_oldest_first(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(records, key=lambda r: parse_client_datetime(r.get("fecha")))


def export_filename(desde: date, hasta: date) -> str:
    return f"registros_{desde.strftime('%d-%m-%Y')}_a_{hasta.strftime('%d-%m-%Y')}.xlsx"


def build_transacciones_xlsx(records: Iterable[Dict[str, Any]]) -> BytesIO:
    """Libro con una hoja ``Registros``, de la transaccion mas vieja a la mas nueva."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append([name for name, _ in COLUMNS])
    for col, (_, width) in enumerate(COLUMNS, start=1):
        cell = ws.cell(row=1, column=col)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")
        ws.column_dimensions[get_column_letter(col)].width = width

    for record in sort_oldest_first(records):
        ws.append(export_row(record))

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream
