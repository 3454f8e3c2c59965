"""
Fixtures compartidas.

La configuración se fija por variables de entorno antes de importar la
aplicación: base SQLite en un directorio temporal, sin pausa entre lotes
de correo y un destinatario para el reporte de cierre.
"""

import json
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="eventos_qr_tests_")

os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/eventos_test.db"
os.environ["QR_DIR"] = os.path.join(_TMP, "qr")
os.environ["DIRECTORIOS_LIMPIEZA"] = json.dumps([os.path.join(_TMP, "qr")])
os.environ["LOG_DIR"] = os.path.join(_TMP, "logs")
os.environ["PAUSA_CORREOS_SEGUNDOS"] = "0"
os.environ["DESTINATARIOS_REPORTE"] = json.dumps(["finanzas@example.com"])
os.environ["SECRET_KEY"] = "clave-de-pruebas"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.config import settings  # noqa: E402
from app.core.errors import ExternalServiceError  # noqa: E402
from app.core.security import crear_token  # noqa: E402
from app.database import SessionLocal, drop_all_tables, init_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Persona  # noqa: E402
from app.services.configuracion_service import inicializar_configuracion  # noqa: E402
from app.services.mailer import Mailer, get_mailer  # noqa: E402

GRUPO_POR_ROL = {rol: grupo for grupo, rol in settings.grupos_roles.items()}


class FakeMailer(Mailer):
    """Guarda los correos en memoria; falla para las direcciones indicadas"""

    def __init__(self):
        super().__init__(host="smtp.test")
        self.enviados = []
        self.fallar_para = set()

    def enviar(self, destinatarios, asunto, texto, adjuntos=None, html=None):
        if isinstance(destinatarios, str):
            destinatarios = [destinatarios]
        if self.fallar_para.intersection(destinatarios):
            raise ExternalServiceError("No se pudo enviar el correo: buzón rechazado")
        self.enviados.append({
            "para": destinatarios,
            "asunto": asunto,
            "texto": texto,
            "adjuntos": adjuntos or [],
            "html": html,
        })


@pytest.fixture(autouse=True)
def base_limpia():
    drop_all_tables()
    init_db()
    with SessionLocal() as sesion:
        inicializar_configuracion(sesion)
    yield


@pytest.fixture
def db():
    sesion = SessionLocal()
    try:
        yield sesion
    finally:
        sesion.close()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(mailer):
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth(email: str, rol: str = None) -> dict:
    grupos = [GRUPO_POR_ROL[rol]] if rol else []
    return {"Authorization": f"Bearer {crear_token(email, grupos)}"}


@pytest.fixture
def admin():
    return auth("admin@example.com", "admin")


@pytest.fixture
def financiero():
    return auth("finanzas@example.com", "financiero")


@pytest.fixture
def guardia():
    return auth("guardia@example.com", "guardiania")


@pytest.fixture
def crear_estudiante(db):
    def _crear(cedula="0102030405", correo="ana@example.com", nombre="Ana", apellido="Pérez"):
        persona = Persona(
            nombre=nombre,
            apellido=apellido,
            cedula=cedula,
            correo=correo,
            tipo_persona="estudiante"
        )
        db.add(persona)
        db.commit()
        return persona

    return _crear
