from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
)
from sqlalchemy.orm import relationship

from gonzaapp.services.dates import utc_now

from .base import Base


def new_id() -> str:
    return str(uuid.uuid4())


def _num(val: Optional[Decimal]) -> float:
    return float(val) if val is not None else 0.0


def _iso(ts: Optional[datetime]) -> Optional[str]:
    # Las fechas se guardan en UTC sin tzinfo
    if ts is None:
        return None
    return ts.replace(microsecond=0).isoformat() + "Z"


# camelCase (JSON, como lo envia el navegador) -> atributo del modelo
TRANSACTION_FIELDS: dict[str, str] = {
    "id": "id",
    "fecha": "fecha",
    "tramite": "tramite",
    "pagado": "pagado",
    "boleta": "boleta",
    "boletasRegistradas": "boletas_registradas",
    "emitidoPor": "emitido_por",
    "placa": "placa",
    "tipoDocumento": "tipo_documento",
    "numeroDocumento": "numero_documento",
    "nombre": "nombre",
    "cilindraje": "cilindraje",
    "tipoVehiculo": "tipo_vehiculo",
    "celular": "celular",
    "ciudad": "ciudad",
    "asesor": "asesor",
    "novedad": "novedad",
    "precioNeto": "precio_neto",
    "comisionExtra": "comision_extra",
    "tarifaServicio": "tarifa_servicio",
    "impuesto4x1000": "impuesto_4x1000",
    "gananciaBruta": "ganancia_bruta",
    "rappi": "rappi",
    "observaciones": "observaciones",
}

MONEY_FIELDS = ("boletasRegistradas", "precioNeto", "tarifaServicio", "impuesto4x1000", "gananciaBruta")
BOOL_FIELDS = ("pagado", "boleta", "comisionExtra", "rappi")
REQUIRED_TEXT_FIELDS = ("tramite", "emitidoPor", "placa", "tipoDocumento", "numeroDocumento", "nombre", "ciudad", "asesor")


# ---------- Transacciones ----------

class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(String(64), primary_key=True, default=new_id)
    fecha = Column(DateTime, nullable=False, index=True)   # UTC
    tramite = Column(String(100), nullable=False)
    pagado = Column(Boolean, nullable=False, default=False)
    boleta = Column(Boolean, nullable=False, default=False)
    boletas_registradas = Column(Numeric(12, 2), nullable=False, default=0)
    emitido_por = Column(String(100), nullable=False, default="")
    placa = Column(String(20), nullable=False, default="")
    tipo_documento = Column(String(10), nullable=False, default="")
    numero_documento = Column(String(30), nullable=False, default="")
    nombre = Column(String(200), nullable=False, default="")
    cilindraje = Column(Integer, nullable=True)
    tipo_vehiculo = Column(String(100), nullable=True)
    celular = Column(String(30), nullable=True)
    ciudad = Column(String(100), nullable=False, default="")
    asesor = Column(String(100), nullable=False, default="")
    novedad = Column(String(100), nullable=True)
    precio_neto = Column(Numeric(12, 2), nullable=False, default=0)
    comision_extra = Column(Boolean, nullable=False, default=False)
    tarifa_servicio = Column(Numeric(12, 2), nullable=False, default=0)
    impuesto_4x1000 = Column(Numeric(12, 2), nullable=False, default=0)
    ganancia_bruta = Column(Numeric(12, 2), nullable=False, default=0)
    rappi = Column(Boolean, nullable=False, default=False)
    observaciones = Column(String(500), nullable=True)

    cuadre = relationship("CuadreRecord", back_populates="transaction", uselist=False,
                          cascade="all, delete-orphan")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, attr in TRANSACTION_FIELDS.items():
            val = getattr(self, attr)
            if key in MONEY_FIELDS:
                val = _num(val)
            elif key == "fecha":
                val = _iso(val)
            out[key] = val
        return out


# ---------- Cuadre ----------

class CuadreRecord(Base):
    __tablename__ = "cuadre"
    id = Column(String(64), primary_key=True, default=new_id)
    transaction_id = Column(String(64), ForeignKey("transactions.id", ondelete="CASCADE"),
                            nullable=False, unique=True)
    banco = Column(String(100), nullable=False, default="")
    banco2 = Column(String(100), nullable=False, default="")
    monto = Column(Numeric(12, 2), nullable=True)
    pagado = Column(Boolean, default=False)
    fecha_cliente = Column(DateTime, nullable=True)
    referencia = Column(String(200), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utc_now)

    transaction = relationship("Transaction", back_populates="cuadre")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "banco": self.banco,
            "banco2": self.banco2,
            "monto": None if self.monto is None else _num(self.monto),
            "pagado": bool(self.pagado),
            "fechaCliente": _iso(self.fecha_cliente),
            "referencia": self.referencia,
            "createdAt": _iso(self.created_at),
        }


# ---------- Catalogos ----------

class Asesor(Base):
    __tablename__ = "asesores"
    id = Column(String(64), primary_key=True, default=new_id)
    nombre = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "nombre": self.nombre, "createdAt": _iso(self.created_at)}


class Tramite(Base):
    __tablename__ = "tramites"
    id = Column(String(64), primary_key=True, default=new_id)
    nombre = Column(String(100), nullable=False, unique=True)
    color = Column(String(32), nullable=True)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "nombre": self.nombre, "color": self.color}


class Novedad(Base):
    __tablename__ = "novedades"
    id = Column(String(64), primary_key=True, default=new_id)
    nombre = Column(String(100), nullable=False, unique=True)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "nombre": self.nombre}


class EmitidoPor(Base):
    __tablename__ = "emitido_por"
    id = Column(String(64), primary_key=True, default=new_id)
    nombre = Column(String(100), nullable=False, unique=True)
    color = Column(String(32), nullable=True)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "nombre": self.nombre, "color": self.color}


class Color(Base):
    __tablename__ = "colores"
    id = Column(String(64), primary_key=True, default=new_id)
    nombre = Column(String(50), nullable=False, unique=True)
    valor = Column(String(32), nullable=False)       # hex o nombre CSS
    intensidad = Column(Integer, nullable=False, default=500)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "nombre": self.nombre, "valor": self.valor, "intensidad": self.intensidad}


# ---------- Boletas pagadas ----------

class BoletaPayment(Base):
    __tablename__ = "boleta_payments"
    id = Column(Integer, primary_key=True, autoincrement=True)
    boleta_referencia = Column(String(100), nullable=False)
    placas = Column(String(1000), nullable=False)            # separadas por coma
    tramites = Column(String(1000), nullable=True)           # separadas por coma
    total_precio_neto = Column(Numeric(12, 2), nullable=False)
    fecha = Column(DateTime, nullable=False, default=utc_now)
    created_by_initial = Column(String(100), nullable=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "boletaReferencia": self.boleta_referencia,
            "placas": [p for p in (self.placas or "").split(",") if p],
            "tramites": [t for t in (self.tramites or "").split(",") if t],
            "totalPrecioNeto": _num(self.total_precio_neto),
            "fecha": _iso(self.fecha),
            "createdByInitial": self.created_by_initial,
        }
