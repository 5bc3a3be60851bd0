from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

# Tarifas SOAT 2025 (valores literales de la tabla oficial, sin redondeos)

VEHICLE_TYPES: Tuple[str, ...] = (
    "Ciclomotor",
    "Menos de 100 c.c.",
    "De 100 a 200 c.c.",
    "Más de 200 c.c.",
    "Motocarros, tricimoto, cuadriciclos",
    "Motocarro 5 pasajeros",
    "Camperos y Camionetas 0 - 9 años",
    "Camperos y Camionetas 10 años o más",
    "Autos Familiares 0 - 9 años",
    "Autos Familiares 10 años o más",
    "Autos de Negocios y Taxis 0 - 9 años",
    "Autos de Negocios y Taxis 10 años o más",
    "Buses y Busetas",
    "Vehículos para 6 o más Pasajeros 0 - 9 años",
    "Vehículos para 6 o más Pasajeros 10 años o más",
    "Carga o Mixto",
    "Oficiales Especiales",
)

MENOS_1500 = "Menos de 1.500 c.c."
ENTRE_1500_2500 = "De 1.500 a 2.500 c.c."
MAS_2500 = "Más de 2.500 c.c."


@dataclass(frozen=True)
class SoatPrice:
    vehicle_type: str
    base_price: int
    code: Optional[str] = None
    cylinder_range: Optional[str] = None


SOAT_PRICES_2025: Tuple[SoatPrice, ...] = (
    SoatPrice("Ciclomotor", 117900, "100"),
    SoatPrice("Menos de 100 c.c.", 243400, "110"),
    SoatPrice("De 100 a 200 c.c.", 326300, "120"),
    SoatPrice("Más de 200 c.c.", 758300, "130"),
    SoatPrice("Motocarros, tricimoto, cuadriciclos", 367800, "140"),
    SoatPrice("Motocarro 5 pasajeros", 367800, "150"),

    SoatPrice("Camperos y Camionetas 0 - 9 años", 789600, "211", MENOS_1500),
    SoatPrice("Camperos y Camionetas 0 - 9 años", 942800, "221", ENTRE_1500_2500),
    SoatPrice("Camperos y Camionetas 0 - 9 años", 1105900, "231", MAS_2500),

    SoatPrice("Camperos y Camionetas 10 años o más", 949200, "212", MENOS_1500),
    SoatPrice("Camperos y Camionetas 10 años o más", 1116800, "222", ENTRE_1500_2500),
    SoatPrice("Camperos y Camionetas 10 años o más", 1269000, "232", MAS_2500),

    SoatPrice("Autos Familiares 0 - 9 años", 445300, "511", MENOS_1500),
    SoatPrice("Autos Familiares 0 - 9 años", 542400, "521", ENTRE_1500_2500),
    SoatPrice("Autos Familiares 0 - 9 años", 633500, "531", MAS_2500),

    SoatPrice("Autos Familiares 10 años o más", 590400, "512", MENOS_1500),
    SoatPrice("Autos Familiares 10 años o más", 674700, "522", ENTRE_1500_2500),
    SoatPrice("Autos Familiares 10 años o más", 674700, "532", MAS_2500),

    SoatPrice("Autos de Negocios y Taxis 0 - 9 años", 267900, "711", MENOS_1500),
    SoatPrice("Autos de Negocios y Taxis 0 - 9 años", 332700, "721", ENTRE_1500_2500),
    SoatPrice("Autos de Negocios y Taxis 0 - 9 años", 429000, "731", MAS_2500),

    SoatPrice("Autos de Negocios y Taxis 10 años o más", 334500, "712", MENOS_1500),
    SoatPrice("Autos de Negocios y Taxis 10 años o más", 410900, "722", ENTRE_1500_2500),
    SoatPrice("Autos de Negocios y Taxis 10 años o más", 503200, "732", MAS_2500),

    # Sin rango de cilindraje: aplica la primera fila
    SoatPrice("Buses y Busetas", 640000, "810"),
    SoatPrice("Buses y Busetas", 632700, "910"),
    SoatPrice("Buses y Busetas", 917700, "920"),
)


def _in_range(cylinder_range: Optional[str], cc: float) -> bool:
    if cylinder_range == MENOS_1500:
        return cc < 1500
    if cylinder_range == ENTRE_1500_2500:
        return 1500 <= cc <= 2500
    if cylinder_range == MAS_2500:
        return cc > 2500
    return False


def calculate_soat_price(vehicle_type: Optional[str], cylinder_capacity: Optional[float]) -> int:
    """Precio SOAT para el tipo de vehiculo y cilindraje; 0 si no aplica."""
    prices = [p for p in SOAT_PRICES_2025 if p.vehicle_type == vehicle_type]
    if not prices:
        return 0

    if prices[0].cylinder_range is None:
        return prices[0].base_price

    # Tipo con rangos pero sin cilindraje (None o 0)
    if not cylinder_capacity:
        return 0

    for p in prices:
        if _in_range(p.cylinder_range, cylinder_capacity):
            return p.base_price
    return 0


def get_available_vehicle_types() -> Tuple[str, ...]:
    return VEHICLE_TYPES
