# run_server.py
import os
import sys
import webbrowser
import threading
import time

from gonzaapp.config import settings as app_settings
from gonzaapp.config.logging_setup import configure_logging


def _prepare_workdir_for_pyinstaller():
    """
    Si se ejecuta como EXE de PyInstaller los datos se extraen en _MEIPASS;
    se cambia a esa carpeta para que las rutas relativas (./db, ajustes) sigan valiendo.
    """
    base = getattr(sys, "_MEIPASS", None)
    if base and os.path.isdir(base):
        os.chdir(base)


def _open_browser_later(url: str, delay: float = 0.8):
    def _go():
        time.sleep(delay)
        try:
            webbrowser.open(url)
        except webbrowser.Error:
            pass
    threading.Thread(target=_go, daemon=True).start()


def main():
    _prepare_workdir_for_pyinstaller()
    configure_logging()

    import uvicorn
    host = os.environ.get("GONZAAPP_HOST", "127.0.0.1")
    port = int(os.environ.get("GONZAAPP_PORT", "8000"))

    if os.environ.get("GONZAAPP_NO_BROWSER") is None:
        _open_browser_later(f"http://{host}:{port}/")

    # Un solo proceso: el buffer de ediciones y los clientes SSE viven en memoria
    uvicorn.run("main:app", host=host, port=port, reload=False,
                log_level=app_settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
