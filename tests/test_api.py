import json
from io import BytesIO

import openpyxl
from sqlalchemy import select

from app.models import CodigoQR
from app.services.codigo_qr_service import emitir_codigo
from tests.conftest import auth


def accion(client, headers, action, **datos):
    return client.post("/api/generar-visitantes", json={"action": action, **datos}, headers=headers)


# ============================================================================
# INGRESO
# ============================================================================

def test_ingreso_requiere_autenticacion(client):
    respuesta = client.post("/api/ingreso", json={"codigo": "X"})
    assert respuesta.status_code == 401


def test_ingreso_de_principio_a_fin(client, db, guardia):
    codigo = emitir_codigo(db, "vis", 2, commit=True).codigo

    primera = client.post("/api/ingreso", json={"codigo": codigo}, headers=guardia)
    assert primera.status_code == 200
    assert primera.json()["disponibles"] == 1
    assert "Disponibles 1 de 2" in primera.json()["message"]

    segunda = client.post("/api/ingreso", json={"codigo": codigo}, headers=guardia)
    assert segunda.json()["disponibles"] == 0

    tercera = client.post("/api/ingreso", json={"codigo": codigo}, headers=guardia)
    assert tercera.status_code == 400
    assert tercera.json() == {"error": "QR ya ha sido usado al máximo", "tipo": "ExhaustedError"}


def test_ingreso_codigo_desconocido(client, guardia):
    respuesta = client.post("/api/ingreso", json={"codigo": "NO-EXISTE"}, headers=guardia)

    assert respuesta.status_code == 404
    assert respuesta.json()["tipo"] == "NotFoundError"


# ============================================================================
# CAJA
# ============================================================================

def test_caja_de_principio_a_fin(client, guardia, mailer):
    assert accion(client, guardia, "open").status_code == 200

    otra = accion(client, guardia, "open")
    assert otra.status_code == 400
    assert otra.json()["tipo"] == "AlreadyOpenError"

    venta = accion(client, guardia, "generate", cantidad=3)
    assert venta.status_code == 200
    assert venta.headers["content-type"] == "application/pdf"
    assert venta.headers["x-codigo"].startswith("VIS-ADD-")

    estado = client.get("/api/generar-visitantes", headers=guardia).json()
    assert estado["caja"]["totalTickets"] == 3
    assert estado["historial"][0]["cantidad"] == 3
    assert estado["precioUnitario"] == 5.0
    assert estado["restante"] is None

    cierre = accion(client, guardia, "close")
    assert cierre.status_code == 200
    assert cierre.json()["summary"]["totalTickets"] == 3
    assert cierre.json()["summary"]["totalRecaudado"] == 15.0
    assert cierre.json()["summary"]["reportSent"] is True

    cierres = accion(client, guardia, "closures").json()["closures"]
    assert len(cierres) == 1


def test_cerrar_sin_caja(client, guardia):
    respuesta = accion(client, guardia, "close")

    assert respuesta.status_code == 400
    assert respuesta.json()["tipo"] == "SessionNotOpenError"


def test_accion_desconocida(client, guardia):
    assert accion(client, guardia, "abrirTodo").status_code == 400


def test_permisos_por_accion(client, guardia, financiero, admin):
    assert accion(client, guardia, "updatePrice", precio=7).status_code == 403
    assert accion(client, financiero, "updatePrice", precio=7).status_code == 403
    assert accion(client, guardia, "openSessions").status_code == 403

    assert accion(client, financiero, "openSessions").status_code == 200
    assert accion(client, admin, "updatePrice", precio=7).json()["precioUnitario"] == 7.0
    assert accion(client, admin, "updateLimit", limite=10).json()["restante"] == 10


def test_admin_fuerza_cierre_y_elimina(client, guardia, admin):
    caja_id = accion(client, guardia, "open").json()["caja"]["id"]
    accion(client, guardia, "generate", cantidad=2)

    assert accion(client, guardia, "forceClose", cajaId=caja_id).status_code == 403
    assert accion(client, admin, "deleteClosure", cajaId=caja_id).json()["tipo"] == "SessionStillOpenError"

    cierre = accion(client, admin, "forceClose", cajaId=caja_id)
    assert cierre.json()["summary"]["cerradoPor"] == "admin@example.com"

    detalle = accion(client, admin, "details", cajaId=caja_id).json()
    assert detalle["summary"]["totalTickets"] == 2

    eliminado = accion(client, admin, "deleteClosure", cajaId=caja_id)
    assert eliminado.json()["eliminados"]["ventas"] == 1
    assert accion(client, admin, "details", cajaId=caja_id).status_code == 404


def test_limite_global_por_api(client, guardia, admin):
    accion(client, admin, "updateLimit", limite=2)
    accion(client, guardia, "open")

    respuesta = accion(client, guardia, "generate", cantidad=3)

    assert respuesta.status_code == 400
    assert respuesta.json()["tipo"] == "LimitExceededError"


def test_exportar_ventas(client, guardia, financiero):
    accion(client, guardia, "open")
    accion(client, guardia, "generate", cantidad=2)

    assert client.get("/api/generar-visitantes/exportar", headers=guardia).status_code == 403

    respuesta = client.get("/api/generar-visitantes/exportar", headers=financiero)
    assert respuesta.status_code == 200

    hoja = openpyxl.load_workbook(BytesIO(respuesta.content)).active
    assert hoja.cell(row=1, column=1).value == "Caja"
    assert hoja.cell(row=2, column=3).value == 2


# ============================================================================
# IMPORTACIÓN
# ============================================================================

def test_importar_emite_ndjson(client, admin, mailer):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Nombre", "Apellido", "Cédula", "Correo", "Tipo"])
    ws.append(["Ana", "Pérez", "0102030405", "ana@example.com", "est"])
    ws.append(["Luis", "Mora", "0102030406", "luis.example.com", "est"])
    buffer = BytesIO()
    wb.save(buffer)

    respuesta = client.post(
        "/api/importar",
        files={"file": ("personas.xlsx", buffer.getvalue(), "application/octet-stream")},
        data={"max_usos_familiares": "2"},
        headers=admin,
    )

    assert respuesta.status_code == 200
    eventos = [json.loads(linea) for linea in respuesta.text.splitlines() if linea]
    assert [e["type"] for e in eventos] == ["start", "progress", "email-failed", "progress", "done"]

    resumen = eventos[-1]
    assert resumen["exitosos"] == 1
    assert resumen["fallidos"] == 1
    assert resumen["correosFallidos"][0]["motivo"] == "invalid email format"


def test_importar_solo_admin(client, guardia):
    respuesta = client.post(
        "/api/importar",
        files={"file": ("personas.xlsx", b"", "application/octet-stream")},
        headers=guardia,
    )
    assert respuesta.status_code == 403


def test_importar_formato_no_soportado(client, admin):
    respuesta = client.post(
        "/api/importar",
        files={"file": ("personas.txt", b"hola", "text/plain")},
        headers=admin,
    )
    assert respuesta.status_code == 400
    assert respuesta.json()["tipo"] == "ValidationError"


def test_importar_max_usos_no_numerico_usa_uno(client, db, admin):
    contenido = "Nombre,Apellido,Cedula,Correo,Tipo\nAna,Pérez,0102030405,ana@example.com,est\n".encode("utf-8")

    respuesta = client.post(
        "/api/importar",
        files={"file": ("personas.csv", contenido, "text/csv")},
        data={"max_usos_familiares": "varios"},
        headers=admin,
    )

    assert respuesta.status_code == 200
    familiar = db.execute(select(CodigoQR).where(CodigoQR.tipo_qr == "fam")).scalar_one()
    assert familiar.max_usos == 1


def test_importar_max_usos_negativo(client, admin):
    respuesta = client.post(
        "/api/importar",
        files={"file": ("personas.csv", b"Nombre,Cedula\n", "text/csv")},
        data={"max_usos_familiares": "-2"},
        headers=admin,
    )
    assert respuesta.status_code == 400
    assert respuesta.json()["tipo"] == "ValidationError"


# ============================================================================
# DASHBOARD, GESTIÓN Y GENERACIÓN
# ============================================================================

def test_dashboard(client, db, guardia):
    codigo = emitir_codigo(db, "est", 3, commit=True).codigo
    client.post("/api/ingreso", json={"codigo": codigo}, headers=guardia)
    client.post("/api/ingreso", json={"codigo": codigo}, headers=guardia)

    datos = client.get("/api/dashboard", headers=guardia).json()
    assert datos["estudiantes"] == 1
    assert datos["familiares"] == 1
    assert datos["totalHoy"] == 2

    vacio = client.get("/api/dashboard", params={"date": "2001-01-01"}, headers=guardia).json()
    assert vacio["total"] == 0
    assert vacio["selectedDate"] == "2001-01-01"
    assert vacio["totalHoy"] == 2


def test_gestion_qr(client, db, admin, mailer, crear_estudiante):
    persona = crear_estudiante(cedula="1700000001", correo="ana@example.com")
    codigo = emitir_codigo(db, "fam", 3, persona=persona, commit=True)

    consulta = client.get("/api/gestion-qr", params={"cedula": "1700000001"}, headers=admin)
    assert consulta.json()["persona"]["codigos"][0]["maxUsos"] == 3

    reenvio = client.post("/api/gestion-qr", json={"action": "resend", "codigoId": codigo.id_codigo}, headers=admin)
    assert reenvio.status_code == 200
    assert mailer.enviados[0]["para"] == ["ana@example.com"]

    cambio = client.patch("/api/gestion-qr", json={"codigoId": codigo.id_codigo, "maxUsos": 5}, headers=admin)
    assert cambio.json()["codigo"]["maxUsos"] == 5

    invalido = client.patch("/api/gestion-qr", json={"codigoId": codigo.id_codigo, "maxUsos": 0}, headers=admin)
    assert invalido.status_code == 400
    assert invalido.json()["tipo"] == "InvalidCapError"


def test_generar_qr_y_estudiante(client, admin, guardia, crear_estudiante):
    crear_estudiante(cedula="0300000003", correo=None)

    assert client.get("/api/estudiante/0300000003", headers=admin).json()["cedula"] == "0300000003"
    assert client.get("/api/estudiante/0300000099", headers=admin).status_code == 404

    estudiante = client.post(
        "/api/generar-qr",
        json={"esEstudiante": True, "cedula": "0300000003", "max_usos": 2},
        headers=admin,
    )
    assert estudiante.json()["mensaje"] == "QR generado"

    visitante = client.post("/api/generar-qr", json={"max_usos": 1}, headers=admin)
    assert visitante.json()["imagen"].startswith("data:image/png;base64,")

    assert client.post("/api/generar-qr", json={"max_usos": 1}, headers=guardia).status_code == 403


def test_limpieza_por_api(client, db, admin, guardia):
    emitir_codigo(db, "vis", 1, commit=True)

    assert client.get("/api/limpieza", headers=guardia).status_code == 403

    rechazo = client.post(
        "/api/limpieza",
        json={"confirmacion": "LIMPIAR TODO", "confirmacionArchivos": "otra cosa"},
        headers=admin,
    )
    assert rechazo.status_code == 400
    assert client.get("/api/limpieza", headers=admin).json()["counts"]["codigos"] == 1

    respuesta = client.post("/api/limpieza", json={"confirmacion": "LIMPIAR TODO"}, headers=admin)
    assert respuesta.json()["counts"]["codigos"] == 0
    assert respuesta.json()["purgedDirectories"] is None
    assert respuesta.json()["lastRun"] is not None


def test_token_invalido(client):
    respuesta = client.get("/api/dashboard", headers={"Authorization": "Bearer basura"})
    assert respuesta.status_code == 401


def test_usuario_sin_rol_puede_leer_ingresos(client):
    sin_rol = auth("invitado@example.com")
    assert client.get("/api/dashboard", headers=sin_rol).status_code == 200
    assert client.get("/api/limpieza", headers=sin_rol).status_code == 403


def test_health(client):
    assert client.get("/health").json()["database"] is True
