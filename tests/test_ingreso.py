from concurrent.futures import ThreadPoolExecutor
import threading

import pytest
from sqlalchemy import func, select

from app.core.errors import ExhaustedError, NotFoundError, ValidationError
from app.database import SessionLocal
from app.models import CodigoQR, Ingreso
from app.services.codigo_qr_service import emitir_codigo
from app.services.ingreso_service import registrar_ingreso


def contar_ingresos(db) -> int:
    return db.execute(select(func.count(Ingreso.id_ingreso))).scalar_one()


def test_ingreso_descuenta_un_uso(db):
    codigo = emitir_codigo(db, "vis", 2, commit=True)

    resultado = registrar_ingreso(db, codigo.codigo)

    assert resultado.usos_actual == 1
    assert resultado.max_usos == 2
    assert resultado.disponibles == 1
    assert "Disponibles 1 de 2" in resultado.mensaje
    assert contar_ingresos(db) == 1


def test_codigo_desconocido_no_registra_ingreso(db):
    with pytest.raises(NotFoundError):
        registrar_ingreso(db, "VIS-NO-EXISTE")

    assert contar_ingresos(db) == 0


def test_codigo_vacio(db):
    with pytest.raises(ValidationError):
        registrar_ingreso(db, "   ")


def test_codigo_agotado_no_cambia_usos(db):
    codigo = emitir_codigo(db, "est", 1, commit=True)
    registrar_ingreso(db, codigo.codigo)

    with pytest.raises(ExhaustedError):
        registrar_ingreso(db, codigo.codigo)

    db.expire_all()
    assert db.get(CodigoQR, codigo.id_codigo).usos_actual == 1
    assert contar_ingresos(db) == 1


def test_visitante_con_dos_usos_de_principio_a_fin(db):
    codigo = emitir_codigo(db, "vis", 2, commit=True)

    primero = registrar_ingreso(db, codigo.codigo)
    assert primero.disponibles == 1

    segundo = registrar_ingreso(db, codigo.codigo)
    assert segundo.disponibles == 0
    assert "Disponibles 0 de 2" in segundo.mensaje

    with pytest.raises(ExhaustedError):
        registrar_ingreso(db, codigo.codigo)


def test_lecturas_simultaneas_solo_una_pasa(db):
    codigo = emitir_codigo(db, "vis", 1, commit=True)
    texto = codigo.codigo
    hilos = 8
    barrera = threading.Barrier(hilos)

    def leer(_):
        barrera.wait()
        sesion = SessionLocal()
        try:
            registrar_ingreso(sesion, texto)
            return "ok"
        except ExhaustedError:
            return "agotado"
        finally:
            sesion.close()

    with ThreadPoolExecutor(max_workers=hilos) as pool:
        resultados = list(pool.map(leer, range(hilos)))

    assert resultados.count("ok") == 1
    assert resultados.count("agotado") == hilos - 1

    db.expire_all()
    assert db.get(CodigoQR, codigo.id_codigo).usos_actual == 1
    assert contar_ingresos(db) == 1
