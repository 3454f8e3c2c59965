from datetime import timedelta
from decimal import Decimal

from app.models import Ingreso
from app.services.caja_service import CajaService
from app.services.codigo_qr_service import emitir_codigo
from app.services.dashboard_service import resumen_diario
from app.services.ingreso_service import registrar_ingreso
from app.utils.fechas import ahora, parsear_fecha


def agregar_ingresos(db, codigo, cantidad, fecha=None):
    fecha = fecha or ahora()
    for i in range(cantidad):
        db.add(Ingreso(codigoqr_id=codigo.id_codigo, fecha=fecha + timedelta(seconds=i)))
    codigo.usos_actual += cantidad
    db.commit()


def test_categorias_por_codigo(db, crear_estudiante):
    persona = crear_estudiante()
    est = emitir_codigo(db, "est", 5, persona=persona)
    fam = emitir_codigo(db, "fam", 5, persona=persona)
    vis = emitir_codigo(db, "vis", 5)

    servicio = CajaService(db)
    caja = servicio.abrir("operador@example.com")
    vendido = emitir_codigo(db, "vis", 5, prefijo="VIS-ADD", referencia=caja.id)
    servicio.registrar_venta(caja.id, vendido, Decimal("5"), 5)

    agregar_ingresos(db, est, 3)
    agregar_ingresos(db, fam, 2)
    agregar_ingresos(db, vis, 1)
    agregar_ingresos(db, vendido, 2)

    db.expire_all()
    resumen = resumen_diario(db)

    assert resumen["estudiantes"] == 1
    assert resumen["familiares"] == 2 + 2 + 1
    assert resumen["adicionales"] == 2
    assert resumen["total"] == 8
    assert resumen["selectedDate"] is None
    assert resumen["totalHoy"] == 8

    grupos = {g["codigo"]: g for g in resumen["ingresosAgrupados"]}
    assert grupos[est.codigo]["totalIngresos"] == 3
    assert grupos[est.codigo]["persona"] == "Ana Pérez"
    assert grupos[vendido.codigo]["esAdicional"] is True
    assert grupos[vis.codigo]["persona"] is None


def test_grupos_ordenados_por_ultima_lectura(db):
    primero = emitir_codigo(db, "vis", 3)
    segundo = emitir_codigo(db, "vis", 3)
    base = ahora() - timedelta(hours=2)

    agregar_ingresos(db, primero, 1, base)
    agregar_ingresos(db, segundo, 1, base + timedelta(minutes=10))
    agregar_ingresos(db, primero, 1, base + timedelta(minutes=30))

    grupos = resumen_diario(db)["ingresosAgrupados"]

    assert [g["codigo"] for g in grupos] == [primero.codigo, segundo.codigo]
    assert grupos[0]["totalIngresos"] == 2


def test_filtro_por_dia_y_total_de_hoy(db):
    codigo = emitir_codigo(db, "vis", 10)
    hoy = ahora()
    ayer = hoy - timedelta(days=1)

    agregar_ingresos(db, codigo, 3, ayer.replace(hour=12, minute=0, second=0))
    agregar_ingresos(db, codigo, 2, hoy.replace(hour=0, minute=0, second=0))

    resumen = resumen_diario(db, ayer.date())

    assert resumen["total"] == 3
    assert resumen["selectedDate"] == ayer.date().isoformat()
    assert resumen["totalHoy"] == 2


def test_fecha_invalida_es_todo_el_historial():
    assert parsear_fecha("2025-13-40") is None
    assert parsear_fecha("ayer") is None
    assert parsear_fecha("2025-10-03").isoformat() == "2025-10-03"


def test_dashboard_ve_el_ingreso_en_la_misma_sesion(db):
    codigo = emitir_codigo(db, "vis", 2, commit=True)

    registrar_ingreso(db, codigo.codigo)
    resumen = resumen_diario(db)

    grupo = resumen["ingresosAgrupados"][0]
    assert grupo["usosActual"] == 1
    assert grupo["totalIngresos"] == 1
    assert codigo.usos_actual == 1
