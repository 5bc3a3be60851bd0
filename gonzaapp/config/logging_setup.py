# gonzaapp/config/logging_setup.py
import logging

from gonzaapp.config import settings as app_settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Un solo handler a stderr para todo el paquete; idempotente."""
    root = logging.getLogger("gonzaapp")
    root.setLevel((level or app_settings.LOG_LEVEL).upper())
    if any(getattr(h, "_gonzaapp", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._gonzaapp = True  # type: ignore[attr-defined]
    root.addHandler(handler)
