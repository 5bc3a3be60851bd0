# gonzaapp/models/base.py
from __future__ import annotations

from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from gonzaapp.config import settings as app_settings

Base = declarative_base()

# ms que SQLite espera un bloqueo antes de fallar (el guardado diferido escribe desde otro hilo)
SQLITE_BUSY_TIMEOUT_MS = 5000


def _sqlite_file(url) -> Path | None:
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return None
    db_file = Path(url.database)
    return db_file if db_file.is_absolute() else Path.cwd() / db_file


def _sqlite_pragmas(dbapi_conn, _record) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cur.close()


def build_engine(url: str | None = None) -> Engine:
    """Engine para ``url`` (por defecto ``DATABASE_URL``); cualquier URL de SQLAlchemy sirve."""
    url = make_url(url or app_settings.DATABASE_URL)

    if url.get_backend_name() != "sqlite":
        return create_engine(url, future=True, pool_pre_ping=True)

    db_file = _sqlite_file(url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=db_file.as_posix())
    eng = create_engine(url, connect_args={"check_same_thread": False}, future=True)
    event.listen(eng, "connect", _sqlite_pragmas)
    return eng


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Iterator[Session]:
    """Dependencia de FastAPI: una sesion por request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
