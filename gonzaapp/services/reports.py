# gonzaapp/services/reports.py
# PDF de totales por dia y de boletas pagadas (reportlab se importa al usarlo)
from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

from gonzaapp.services.dates import format_date_key, to_colombia, parse_client_datetime
from gonzaapp.services.filters import format_currency

INSTALL_HINT = "La exportacion a PDF necesita 'reportlab' (pip install reportlab)."


def ensure_reportlab():
    try:
        from reportlab.lib.pagesizes import A4  # noqa
        return True, None
    except ImportError as e:
        return False, e


def _pdf_set_styles():
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.lib.units import mm
    from reportlab.platypus import SimpleDocTemplate
    styles = getSampleStyleSheet()
    return colors, A4, styles, mm, SimpleDocTemplate


def _grid_style(colors, *extra):
    from reportlab.platypus import TableStyle
    return TableStyle([("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                       ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
                       *extra])


def _doc(buf: BytesIO, landscape_mode: bool = False):
    from reportlab.lib.pagesizes import landscape
    colors, A4, styles, mm, SimpleDocTemplate = _pdf_set_styles()
    size = landscape(A4) if landscape_mode else A4
    doc = SimpleDocTemplate(buf, pagesize=size,
                            leftMargin=15*mm, rightMargin=15*mm,
                            topMargin=12*mm, bottomMargin=12*mm)
    return doc, colors, styles, mm


def build_totales_pdf(totals: List[Dict[str, Any]], empresa: str,
                      rango: Optional[Tuple[str, str]] = None) -> BytesIO:
    """Una fila por dia con los totales de ``get_transactions_summary``."""
    from reportlab.platypus import Paragraph, Spacer, Table

    buf = BytesIO()
    doc, colors, styles, mm = _doc(buf, landscape_mode=True)
    story = []
    title = f"{empresa}: totales por dia"
    if rango:
        title += f" ({rango[0] or '-'} a {rango[1] or '-'})"
    story.append(Paragraph(title, styles["Title"]))
    story.append(Spacer(1, 6))

    rows = [["Fecha", "Transacciones", "Precio neto", "Tarifa servicio", "4x1000", "Ganancia bruta"]]
    sums = {"transactionCount": 0, "precioNetoTotal": 0.0, "tarifaServicioTotal": 0.0,
            "impuesto4x1000Total": 0.0, "gananciaBrutaTotal": 0.0}
    for t in totals:
        rows.append([
            format_date_key(t["date"]),
            str(t["transactionCount"]),
            format_currency(t["precioNetoTotal"]),
            format_currency(t["tarifaServicioTotal"]),
            format_currency(t["impuesto4x1000Total"]),
            format_currency(t["gananciaBrutaTotal"]),
        ])
        for k in sums:
            sums[k] += t[k]
    rows.append(["Total", str(sums["transactionCount"]),
                 format_currency(sums["precioNetoTotal"]),
                 format_currency(sums["tarifaServicioTotal"]),
                 format_currency(sums["impuesto4x1000Total"]),
                 format_currency(sums["gananciaBrutaTotal"])])

    t = Table(rows, colWidths=[75*mm, 28*mm, 38*mm, 38*mm, 32*mm, 38*mm], repeatRows=1)
    t.setStyle(_grid_style(colors,
                           ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                           ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold")))
    story.append(t)

    doc.build(story)
    return buf


def build_boletas_pdf(groups: List[Tuple[str, List[Dict[str, Any]]]],
                      totals: Dict[str, float], empresa: str) -> BytesIO:
    """Pagos de boletas agrupados por dia, con egresos, 4x1000 y neto."""
    from reportlab.platypus import Paragraph, Spacer, Table

    buf = BytesIO()
    doc, colors, styles, mm = _doc(buf)
    story = []
    story.append(Paragraph(f"{empresa}: boletas pagadas", styles["Title"]))
    story.append(Spacer(1, 6))

    head = [
        ["Total egresos", format_currency(totals["totalEgresos"])],
        ["4x1000", format_currency(totals["total4x1000"])],
        ["Neto", format_currency(totals["neto"])],
    ]
    t1 = Table(head, colWidths=[60*mm, 40*mm])
    t1.setStyle(_grid_style(colors, ("ALIGN", (1, 0), (1, -1), "RIGHT")))
    story.append(t1)
    story.append(Spacer(1, 8))

    for key, payments in groups:
        story.append(Paragraph(format_date_key(key), styles["Heading3"]))
        rows = [["Hora", "Boleta", "Placas", "Tramites", "Total", "Registro"]]
        for p in payments:
            fecha = parse_client_datetime(p["fecha"])
            rows.append([
                to_colombia(fecha).strftime("%H:%M") if fecha else "-",
                p["boletaReferencia"],
                ", ".join(p["placas"]),
                ", ".join(p["tramites"]) or "-",
                format_currency(p["totalPrecioNeto"]),
                p.get("createdByInitial") or "-",
            ])
        t = Table(rows, colWidths=[15*mm, 28*mm, 50*mm, 37*mm, 28*mm, 22*mm], repeatRows=1)
        t.setStyle(_grid_style(colors, ("ALIGN", (4, 1), (4, -1), "RIGHT")))
        story.append(t)
        story.append(Spacer(1, 6))

    doc.build(story)
    return buf
