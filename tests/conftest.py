import os
import shutil
import tempfile

# Base y ajustes de prueba: antes de importar cualquier modulo de gonzaapp
_TMP = tempfile.mkdtemp(prefix="gonzaapp-tests-")
os.environ["GONZAAPP_DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["GONZAAPP_SETTINGS_PATH"] = os.path.join(_TMP, "ajustes.json")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

from gonzaapp.models.base import Base, SessionLocal, engine  # noqa: E402
from gonzaapp.models.entities import Transaction  # noqa: E402
from gonzaapp.services.db_init import init_db  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_db():
    Base.metadata.drop_all(bind=engine)
    init_db(seed=True)
    settings_file = os.environ["GONZAAPP_SETTINGS_PATH"]
    if os.path.exists(settings_file):
        os.remove(settings_file)
    yield


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_tx(db):
    """Inserta una transaccion con valores minimos; devuelve el modelo."""
    def _make(**overrides):
        values = dict(
            fecha=datetime(2024, 1, 15, 17, 0),
            tramite="SOAT",
            placa="ABC123",
            nombre="Cliente",
            asesor="Ana",
            emitido_por="GONZAAPP",
            precio_neto=100000,
            tarifa_servicio=20000,
        )
        values.update(overrides)
        tx = Transaction(**values)
        db.add(tx)
        db.commit()
        return tx
    return _make


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(_TMP, ignore_errors=True)
