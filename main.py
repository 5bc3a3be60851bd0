from __future__ import annotations

from contextlib import asynccontextmanager
from io import BytesIO
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, Depends, Form
from fastapi.responses import HTMLResponse, RedirectResponse, Response, PlainTextResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
from sqlalchemy.orm import Session

from gonzaapp.api_broadcast import router as broadcast_router
from gonzaapp.api_catalogos import router as catalogos_router
from gonzaapp.api_cuadre import router as cuadre_router
from gonzaapp.api_transacciones import edit_buffer, router as transacciones_router
from gonzaapp.config import settings as app_settings
from gonzaapp.config.logging_setup import configure_logging
from gonzaapp.models.base import get_db
from gonzaapp.services import boletas, cuadre, export_xlsx, lookups, reports
from gonzaapp.services import transactions as tx_service
from gonzaapp.services.dates import (
    colombia_now, format_colombia_date, format_date_key, parse_client_datetime, to_colombia
)
from gonzaapp.services.db_init import init_db
from gonzaapp.services.filters import (
    date_range, filter_by_date_range, filter_totals_by_date_range, format_currency, group_by_date,
    page_for_date, search_records, search_totals,
)
from gonzaapp.services.formulas import calculate_formulas
from gonzaapp.services.settings_store import load_settings, save_settings
from gonzaapp.services.soat import get_available_vehicle_types

BASE_DIR = Path(__file__).resolve().parent

# ------------------------------------------------------------------------------
# App / Templates / Middleware
# ------------------------------------------------------------------------------
APP_VERSION = "v1.0"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    init_db()
    yield
    # ediciones que aun esperan la ventana de guardado
    edit_buffer.flush()
    edit_buffer.cancel()


app = FastAPI(title=app_settings.APP_NAME, lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=app_settings.SECRET_KEY, session_cookie="gonzaapp_session")
app.mount("/static", StaticFiles(directory=BASE_DIR / "gonzaapp" / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "gonzaapp" / "templates")


def _hora(value) -> str:
    dt = parse_client_datetime(value)
    return to_colombia(dt).strftime("%H:%M") if dt else ""


def _datetime_local(value) -> str:
    # valor para <input type="datetime-local"> en hora de Colombia
    dt = parse_client_datetime(value)
    return to_colombia(dt).strftime("%Y-%m-%dT%H:%M") if dt else ""


templates.env.filters["moneda"] = format_currency
templates.env.filters["fecha_larga"] = format_date_key
templates.env.filters["hora"] = _hora
templates.env.filters["datetime_local"] = _datetime_local

app.include_router(transacciones_router)
app.include_router(catalogos_router)
app.include_router(cuadre_router)
app.include_router(broadcast_router)

# ------------------------------------------------------------------------------
# Modo seleccion de asesor / Contexto del encabezado
# ------------------------------------------------------------------------------
def _asesor_mode(request: Request) -> bool:
    return bool(request.session.get("asesor_seleccion", False))

@app.post("/asesores/seleccion")
def asesor_selection_toggle(request: Request):
    request.session["asesor_seleccion"] = not _asesor_mode(request)
    ref = request.headers.get("referer") or "/"
    return RedirectResponse(ref, status_code=303)

def _ctx(request: Request, extra: Optional[dict] = None):
    cfg = load_settings()
    base = {
        "request": request,
        "APP_NAME": app_settings.APP_NAME,
        "APP_VERSION": APP_VERSION,
        "NAV_ITEMS": app_settings.get_nav_items(),
        "EMPRESA": cfg["empresa"]["nombre"] or app_settings.APP_NAME,
        "REFRESH_SEGUNDOS": cfg["tabla"]["refresh_segundos"],
        "ASESOR_MODE": _asesor_mode(request),
    }
    return base if not extra else base | extra

# ------------------------------------------------------------------------------
# Paginas
# ------------------------------------------------------------------------------
@app.get("/", response_class=HTMLResponse)
def transacciones_page(request: Request, q: Optional[str] = None, desde: Optional[str] = None,
                       hasta: Optional[str] = None, fecha: Optional[str] = None,
                       page: Optional[int] = None, db: Session = Depends(get_db)):
    rows = edit_buffer.overlay([t.to_dict() for t in tx_service.get_transactions(db)])
    rows = search_records(rows, q)
    rows = filter_by_date_range(rows, desde, hasta)
    groups = group_by_date(rows)

    total_pages = len(groups) or 1
    if page is None:
        page = page_for_date(groups, fecha)
    page = min(max(page, 1), total_pages)
    day_key, day_rows = groups[page - 1] if groups else (None, [])

    pending = edit_buffer.pending()
    for r in day_rows:
        f = calculate_formulas(r)
        r["rappiComision"] = float(f["rappiComision"])
        r["pendiente"] = r["id"] in pending

    return templates.TemplateResponse(request, "transacciones.html", _ctx(request, {
        "rows": day_rows,
        "day_key": day_key,
        "day_title": format_date_key(day_key, upper=True) if day_key else "",
        "page": page,
        "total_pages": total_pages,
        "day_keys": [k for k, _ in groups],
        "q": q or "", "desde": desde or "", "hasta": hasta or "",
        "tramites": lookups.get_all_tramites(db),
        "asesores": lookups.get_all_asesores(db),
        "emitido_por": lookups.get_all_emitido_por_with_colors(db),
        "novedades": lookups.get_all_novedades(db) or list(tx_service.NOVEDAD_OPTIONS),
        "tipos_documento": tx_service.TIPO_DOCUMENTO_OPTIONS,
        "tipos_vehiculo": get_available_vehicle_types(),
        "debounce_ms": int(app_settings.SAVE_DEBOUNCE_SECONDS * 1000),
    }))

@app.get("/cuadre", response_class=HTMLResponse)
def cuadre_page(request: Request, db: Session = Depends(get_db)):
    rows = cuadre.get_cuadre_records(db)
    cfg = load_settings()
    return templates.TemplateResponse(request, "cuadre.html", _ctx(request, {
        "grupos": cuadre.group_by_asesor(rows),
        "totales": cuadre.cuadre_totals(rows),
        "bancos": cfg["bancos"],
        "debounce_ms": int(app_settings.CUADRE_DEBOUNCE_SECONDS * 1000),
    }))

def _totales(db: Session, q: Optional[str], desde: Optional[str], hasta: Optional[str]) -> list[dict]:
    totals = filter_totals_by_date_range(tx_service.get_transactions_summary(db), desde, hasta)
    return search_totals(totals, q)

@app.get("/totales", response_class=HTMLResponse)
def totales_page(request: Request, q: Optional[str] = None, desde: Optional[str] = None,
                 hasta: Optional[str] = None, db: Session = Depends(get_db)):
    totals = _totales(db, q, desde, hasta)
    return templates.TemplateResponse(request, "totales.html", _ctx(request, {
        "totales": totals,
        "q": q or "", "desde": desde or "", "hasta": hasta or "",
    }))

@app.get("/boletas", response_class=HTMLResponse)
def boletas_page(request: Request, db: Session = Depends(get_db)):
    payments = boletas.list_boleta_payments(db)
    return templates.TemplateResponse(request, "boletas.html", _ctx(request, {
        "grupos": boletas.group_payments_by_date(payments),
        "totales": boletas.boleta_totals(payments),
    }))

# Ajustes
@app.get("/ajustes", response_class=HTMLResponse)
def ajustes_page(request: Request, saved: int = 0, db: Session = Depends(get_db)):
    return templates.TemplateResponse(request, "ajustes.html", _ctx(request, {
        "cfg": load_settings(),
        "saved": bool(saved),
        "tramites": lookups.get_all_tramites(db),
        "hoy": format_colombia_date(colombia_now(), upper=False),
    }))

@app.post("/ajustes", response_class=HTMLResponse)
def ajustes_save(
    request: Request,
    empresa_nombre: str = Form(""),
    empresa_ciudad: str = Form(""),
    empresa_nit: str = Form(""),
    bancos: str = Form(""),
    refresh_segundos: str = Form("30"),
    tramite_por_defecto: str = Form("SOAT"),
):
    cfg = load_settings()
    cfg["empresa"] = {"nombre": empresa_nombre.strip(), "ciudad": empresa_ciudad.strip(), "nit": empresa_nit.strip()}
    cfg["bancos"] = [b.strip() for b in bancos.splitlines() if b.strip()]
    cfg["tabla"]["refresh_segundos"] = refresh_segundos
    cfg["tabla"]["tramite_por_defecto"] = tramite_por_defecto
    save_settings(cfg)
    return RedirectResponse("/ajustes?saved=1", status_code=303)

# ------------------------------------------------------------------------------
# PDF
# ------------------------------------------------------------------------------
def _pdf_response(buf: BytesIO, filename: str) -> Response:
    return Response(
        content=buf.getvalue(),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'}
    )

@app.get("/totales.pdf")
def totales_pdf(q: Optional[str] = None, desde: Optional[str] = None, hasta: Optional[str] = None,
                db: Session = Depends(get_db)):
    ok, err = reports.ensure_reportlab()
    if not ok:
        return PlainTextResponse(reports.INSTALL_HINT, status_code=501)
    empresa = load_settings()["empresa"]["nombre"] or app_settings.APP_NAME
    rango = (desde, hasta) if desde or hasta else None
    buf = reports.build_totales_pdf(_totales(db, q, desde, hasta), empresa, rango)
    return _pdf_response(buf, "totales.pdf")

@app.get("/boletas.pdf")
def boletas_pdf(db: Session = Depends(get_db)):
    ok, err = reports.ensure_reportlab()
    if not ok:
        return PlainTextResponse(reports.INSTALL_HINT, status_code=501)
    payments = boletas.list_boleta_payments(db)
    empresa = load_settings()["empresa"]["nombre"] or app_settings.APP_NAME
    buf = reports.build_boletas_pdf(boletas.group_payments_by_date(payments),
                                    boletas.boleta_totals(payments), empresa)
    return _pdf_response(buf, "boletas.pdf")

# ------------------------------------------------------------------------------
# Excel
# ------------------------------------------------------------------------------
@app.get("/transacciones.xlsx")
def transacciones_xlsx(desde: Optional[str] = None, hasta: Optional[str] = None,
                       db: Session = Depends(get_db)):
    rng = date_range(desde, hasta)
    if rng is None:
        return PlainTextResponse("Debe enviar desde y hasta (YYYY-MM-DD)", status_code=400)
    rows = edit_buffer.overlay([t.to_dict() for t in tx_service.get_transactions(db)])
    rows = filter_by_date_range(rows, *rng)
    if not rows:
        return PlainTextResponse(export_xlsx.NO_DATA, status_code=404)
    return StreamingResponse(
        export_xlsx.build_transacciones_xlsx(rows),
        media_type=export_xlsx.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_xlsx.export_filename(*rng)}"'},
    )
