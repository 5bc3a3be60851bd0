# gonzaapp/config/settings.py
import os

APP_NAME: str = "GonzaApp"
SECRET_KEY: str = os.environ.get("GONZAAPP_SECRET_KEY", "cambiar-en-produccion-por-favor-32bytes")

# DB-URL (sqlite por defecto bajo ./db/)
DATABASE_URL: str = os.environ.get("GONZAAPP_DATABASE_URL", "sqlite:///./db/gonzaapp.db")

# Ajustes editables desde /ajustes (JSON)
SETTINGS_PATH: str = os.environ.get("GONZAAPP_SETTINGS_PATH", "gonzaapp/data/ajustes.json")

LOG_LEVEL: str = os.environ.get("GONZAAPP_LOG_LEVEL", "INFO")

# Toda agrupacion por dia y toda fecha mostrada pasa por esta zona
TIMEZONE: str = "America/Bogota"

# Ventanas de auto-guardado (segundos)
SAVE_DEBOUNCE_SECONDS: float = 0.8
CUADRE_DEBOUNCE_SECONDS: float = 0.8

# Lecturas de transacciones con reintento
READ_RETRY_ATTEMPTS: int = 5
READ_RETRY_INITIAL_DELAY: float = 0.2


def get_nav_items() -> list[dict]:
    """Navegacion del encabezado."""
    return [
        {"href": "/", "label": "Transacciones"},
        {"href": "/cuadre", "label": "Cuadre"},
        {"href": "/totales", "label": "Totales"},
        {"href": "/boletas", "label": "Boletas"},
        {"href": "/ajustes", "label": "Ajustes"},
    ]
