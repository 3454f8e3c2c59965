from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.errors import (
    AlreadyOpenError,
    LimitExceededError,
    NotFoundError,
    SessionNotOpenError,
    SessionStillOpenError,
    UnauthorizedError,
    ValidationError,
)
from app.models import CajaTurno, CodigoQR, Ingreso, VentaAdicional
from app.services.caja_service import CajaService
from app.services.codigo_qr_service import emitir_codigo
from app.services.configuracion_service import ConfiguracionService
from app.services.ingreso_service import registrar_ingreso

OPERADOR_A = "operador.a@example.com"
OPERADOR_B = "operador.b@example.com"


@pytest.fixture
def caja_service(db, mailer):
    return CajaService(db, mailer)


def vender(servicio, db, caja, cantidad, precio="5"):
    codigo = emitir_codigo(db, "vis", cantidad, prefijo="VIS-ADD", referencia=caja.id)
    return servicio.registrar_venta(caja.id, codigo, Decimal(precio), cantidad)


def test_abrir_caja(caja_service):
    caja = caja_service.abrir(OPERADOR_A)

    assert caja.abierto is True
    assert caja.abierto_por == OPERADOR_A


def test_no_se_abre_dos_veces_para_el_mismo_operador(caja_service, db):
    caja = caja_service.abrir(OPERADOR_A)

    with pytest.raises(AlreadyOpenError):
        caja_service.abrir(OPERADOR_A)

    db.expire_all()
    existente = db.get(CajaTurno, caja.id)
    assert existente.abierto is True
    assert existente.abierto_por == OPERADOR_A
    assert db.execute(select(func.count(CajaTurno.id))).scalar_one() == 1


def test_indice_unico_impide_segunda_caja_abierta(db):
    db.add(CajaTurno(abierto=True, abierto_por=OPERADOR_A))
    db.commit()

    servicio = CajaService(db)
    # simula una carrera: la comprobación previa no ve la caja existente
    servicio.caja_abierta_de = lambda operador: None

    with pytest.raises(AlreadyOpenError):
        servicio.abrir(OPERADOR_A)


def test_operadores_distintos_tienen_su_propia_caja(caja_service):
    caja_a = caja_service.abrir(OPERADOR_A)
    caja_b = caja_service.abrir(OPERADOR_B)

    assert caja_a.id != caja_b.id
    assert len(caja_service.listar_abiertas()) == 2


def test_cierre_suma_solo_sus_ventas(caja_service, db):
    caja_a = caja_service.abrir(OPERADOR_A)
    caja_b = caja_service.abrir(OPERADOR_B)

    vender(caja_service, db, caja_a, 3, "5")
    vender(caja_service, db, caja_a, 2, "7.50")
    vender(caja_service, db, caja_b, 10, "5")

    resumen = caja_service.cerrar(caja_a.id, OPERADOR_A)

    assert resumen.total_boletos == 5
    assert resumen.total_recaudado == Decimal("30.00")
    assert resumen.cerrado_por == OPERADOR_A
    assert resumen.cerrado_at is not None


def test_venta_de_tres_boletos_de_principio_a_fin(caja_service, mailer):
    caja_service.abrir(OPERADOR_A)

    resultado = caja_service.generar_venta(OPERADOR_A, 3)
    assert resultado.pdf.startswith(b"%PDF")
    assert resultado.codigo.max_usos == 3

    caja = caja_service.caja_abierta_de(OPERADOR_A)
    resumen = caja_service.cerrar(caja.id, OPERADOR_A)

    assert resumen.total_boletos == 3
    assert resumen.total_recaudado == Decimal("15.00")
    assert resumen.reporte_enviado is True
    reporte = mailer.enviados[-1]
    assert reporte["para"] == ["finanzas@example.com"]
    assert reporte["adjuntos"][0].tipo_mime == "application/pdf"


def test_fallo_del_reporte_no_deshace_el_cierre(caja_service, db, mailer):
    caja = caja_service.abrir(OPERADOR_A)
    mailer.fallar_para.add("finanzas@example.com")

    resumen = caja_service.cerrar(caja.id, OPERADOR_A)

    assert resumen.reporte_enviado is False
    db.expire_all()
    assert db.get(CajaTurno, caja.id).abierto is False


def test_solo_quien_abre_puede_cerrar(caja_service):
    caja = caja_service.abrir(OPERADOR_A)

    with pytest.raises(UnauthorizedError):
        caja_service.cerrar(caja.id, OPERADOR_B)


def test_cerrar_caja_ya_cerrada(caja_service):
    caja = caja_service.abrir(OPERADOR_A)
    caja_service.cerrar(caja.id, OPERADOR_A)

    with pytest.raises(SessionNotOpenError):
        caja_service.cerrar(caja.id, OPERADOR_A)


def test_forzar_cierre(caja_service):
    caja = caja_service.abrir(OPERADOR_A)

    resumen = caja_service.forzar_cierre(caja.id, "admin@example.com")

    assert resumen.cerrado_por == "admin@example.com"
    assert caja_service.listar_abiertas() == []


def test_no_se_vende_en_caja_cerrada(caja_service, db):
    caja = caja_service.abrir(OPERADOR_A)
    caja_service.cerrar(caja.id, OPERADOR_A)

    codigo = emitir_codigo(db, "vis", 1)
    with pytest.raises(SessionNotOpenError):
        caja_service.registrar_venta(caja.id, codigo, Decimal("5"), 1)


def test_venta_en_caja_inexistente(caja_service, db):
    codigo = emitir_codigo(db, "vis", 1)
    with pytest.raises(NotFoundError):
        caja_service.registrar_venta(999, codigo, Decimal("5"), 1)


def test_generar_venta_sin_caja_abierta(caja_service):
    with pytest.raises(SessionNotOpenError):
        caja_service.generar_venta(OPERADOR_A, 2)


def test_generar_venta_cantidad_invalida(caja_service):
    caja_service.abrir(OPERADOR_A)

    with pytest.raises(ValidationError):
        caja_service.generar_venta(OPERADOR_A, 0)


def test_generar_venta_por_correo(caja_service, mailer):
    caja_service.abrir(OPERADOR_A)

    resultado = caja_service.generar_venta(OPERADOR_A, 2, "cliente@example.com", enviar_correo=True)

    assert resultado.enviado is True
    assert resultado.pdf is None
    assert resultado.venta.enviado_por_correo is True
    assert resultado.total == Decimal("10.00")
    assert mailer.enviados[0]["para"] == ["cliente@example.com"]


def test_generar_venta_correo_invalido(caja_service):
    caja_service.abrir(OPERADOR_A)

    with pytest.raises(ValidationError):
        caja_service.generar_venta(OPERADOR_A, 1, "sin-arroba", enviar_correo=True)


def test_limite_global_de_boletos(caja_service, db):
    ConfiguracionService(db).actualizar_limite(5)
    caja_service.abrir(OPERADOR_A)

    caja_service.generar_venta(OPERADOR_A, 4)
    assert caja_service.stock_restante() == 1

    with pytest.raises(LimitExceededError):
        caja_service.generar_venta(OPERADOR_A, 2)

    caja_service.generar_venta(OPERADOR_A, 1)
    assert caja_service.stock_restante() == 0


def test_sin_limite_no_hay_stock(caja_service):
    assert caja_service.stock_restante() is None


def test_precio_configurado_se_usa_en_la_venta(caja_service, db):
    ConfiguracionService(db).actualizar_precio("3.5")
    caja_service.abrir(OPERADOR_A)

    resultado = caja_service.generar_venta(OPERADOR_A, 2)

    assert resultado.precio_unitario == Decimal("3.50")
    assert resultado.total == Decimal("7.00")


def test_eliminar_cierre_borra_solo_lo_suyo(caja_service, db):
    caja_a = caja_service.abrir(OPERADOR_A)
    caja_b = caja_service.abrir(OPERADOR_B)
    venta_a = vender(caja_service, db, caja_a, 2)
    venta_b = vender(caja_service, db, caja_b, 1)
    codigo_a = venta_a.codigo.codigo
    codigo_b_id = venta_b.codigo_id
    registrar_ingreso(db, codigo_a)

    caja_service.cerrar(caja_a.id, OPERADOR_A)
    eliminados = caja_service.eliminar_cierre(caja_a.id)

    assert eliminados == {"ventas": 1, "codigos": 1, "ingresos": 1}
    assert db.get(CajaTurno, caja_a.id) is None
    assert db.execute(select(func.count(Ingreso.id_ingreso))).scalar_one() == 0
    assert db.execute(select(CodigoQR).where(CodigoQR.codigo == codigo_a)).first() is None

    assert db.get(CajaTurno, caja_b.id) is not None
    assert db.get(CodigoQR, codigo_b_id) is not None
    assert db.execute(select(func.count(VentaAdicional.id))).scalar_one() == 1


def test_no_se_elimina_una_caja_abierta(caja_service):
    caja = caja_service.abrir(OPERADOR_A)

    with pytest.raises(SessionStillOpenError):
        caja_service.eliminar_cierre(caja.id)


def test_eliminar_cierre_inexistente(caja_service):
    with pytest.raises(NotFoundError):
        caja_service.eliminar_cierre(12345)


def test_listar_cierres_y_detalle(caja_service, db):
    caja = caja_service.abrir(OPERADOR_A)
    vender(caja_service, db, caja, 4, "2")
    caja_service.cerrar(caja.id, OPERADOR_A)

    cierres = caja_service.listar_cierres()
    assert [c.id for c in cierres] == [caja.id]
    assert cierres[0].total_recaudado == Decimal("8.00")

    detalle = caja_service.detalle(caja.id)
    assert detalle["summary"]["totalTickets"] == 4
    assert detalle["ventas"][0]["cantidad"] == 4


def test_correo_invalido_se_rechaza_aunque_no_se_envie(caja_service, db):
    caja_service.abrir(OPERADOR_A)

    with pytest.raises(ValidationError):
        caja_service.generar_venta(OPERADOR_A, 1, "sin-arroba", enviar_correo=False)

    assert db.execute(select(func.count(VentaAdicional.id))).scalar_one() == 0


def test_sin_servicio_de_correo_no_se_registra_la_venta(db):
    servicio = CajaService(db)
    servicio.abrir(OPERADOR_A)

    with pytest.raises(ValidationError):
        servicio.generar_venta(OPERADOR_A, 2, "cliente@example.com", enviar_correo=True)

    assert db.execute(select(func.count(VentaAdicional.id))).scalar_one() == 0
    assert db.execute(select(func.count(CodigoQR.id_codigo))).scalar_one() == 0
