"""
EVENTOS QR - API de Caja (venta de boletos adicionales)
app/api/caja.py

POST /generar-visitantes recibe {"action": ...}. Antes de ejecutar la
acción se verifica el rol requerido en PERMISOS_ACCIONES.
"""

from typing import Callable, Dict
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.orm import Session

from app.core.errors import SessionNotOpenError, ValidationError
from app.core.security import (
    ROL_ADMIN,
    ROL_FINANCIERO,
    Usuario,
    obtener_usuario_actual,
    requiere_rol,
    verificar_permiso,
)
from app.database import get_db
from app.schemas import AccionCajaRequest
from app.services.caja_service import CajaService
from app.services.configuracion_service import ConfiguracionService
from app.services.exportacion import exportar_ventas_excel
from app.services.mailer import Mailer, get_mailer
from app.utils.fechas import ahora

logger = logging.getLogger(__name__)

router = APIRouter()

# Roles por acción; vacío = cualquier usuario autenticado
PERMISOS_ACCIONES = {
    "open": (),
    "close": (),
    "generate": (),
    "closures": (),
    "details": (ROL_ADMIN, ROL_FINANCIERO),
    "openSessions": (ROL_ADMIN, ROL_FINANCIERO),
    "forceClose": (ROL_ADMIN,),
    "deleteClosure": (ROL_ADMIN,),
    "updatePrice": (ROL_ADMIN,),
    "updateLimit": (ROL_ADMIN,),
}


def _caja_id(datos: AccionCajaRequest) -> int:
    if not datos.cajaId:
        raise ValidationError("Debes indicar la caja")
    return datos.cajaId


# ============================================================================
# ACCIONES
# ============================================================================

def _abrir(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    caja = servicio.abrir(usuario.email)
    return {"success": True, "caja": servicio.resumen(caja).to_dict()}


def _cerrar(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    caja = servicio.caja_abierta_de(usuario.email)
    if caja is None:
        raise SessionNotOpenError("No hay una caja abierta")

    resumen = servicio.cerrar(caja.id, usuario.email)
    return {"success": True, "summary": resumen.to_dict()}


def _generar(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    resultado = servicio.generar_venta(usuario.email, datos.cantidad, datos.correo, datos.enviarCorreo)

    if resultado.pdf is not None:
        return Response(
            content=resultado.pdf,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'attachment; filename="{resultado.codigo.codigo}.pdf"',
                "X-Codigo": resultado.codigo.codigo,
            },
        )

    return {
        "success": True,
        "mensaje": f"QR enviado a {resultado.venta.correo}",
        "codigo": resultado.codigo.codigo,
        "cantidad": resultado.venta.cantidad,
        "precioUnitario": float(resultado.precio_unitario),
        "total": float(resultado.total),
    }


def _cierres(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    limite = datos.limit if datos.limit and datos.limit > 0 else 20
    return {"closures": [r.to_dict() for r in servicio.listar_cierres(limite)]}


def _detalle(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    return servicio.detalle(_caja_id(datos))


def _cajas_abiertas(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    return {"sessions": [r.to_dict() for r in servicio.listar_abiertas()]}


def _forzar_cierre(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    resumen = servicio.forzar_cierre(_caja_id(datos), usuario.email)
    return {"success": True, "summary": resumen.to_dict()}


def _eliminar_cierre(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    eliminados = servicio.eliminar_cierre(_caja_id(datos))
    return {"success": True, "eliminados": eliminados}


def _actualizar_precio(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    precio = ConfiguracionService(servicio.db).actualizar_precio(datos.precio)
    return {"success": True, "precioUnitario": float(precio)}


def _actualizar_limite(servicio: CajaService, datos: AccionCajaRequest, usuario: Usuario):
    limite = ConfiguracionService(servicio.db).actualizar_limite(datos.limite)
    return {"success": True, "limite": limite, "restante": servicio.stock_restante()}


ACCIONES: Dict[str, Callable] = {
    "open": _abrir,
    "close": _cerrar,
    "generate": _generar,
    "closures": _cierres,
    "details": _detalle,
    "openSessions": _cajas_abiertas,
    "forceClose": _forzar_cierre,
    "deleteClosure": _eliminar_cierre,
    "updatePrice": _actualizar_precio,
    "updateLimit": _actualizar_limite,
}


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.get("/generar-visitantes")
async def estado_caja(
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol())
):
    """
    Precio, caja abierta, historial de ventas, cierres recientes,
    límite global y stock restante.

    La caja mostrada es la del usuario; un admin sin caja propia ve la
    última caja abierta de cualquier operador.
    """
    servicio = CajaService(db)
    config = ConfiguracionService(db)

    caja = servicio.caja_abierta_de(usuario.email)
    if caja is None and usuario.es_admin:
        abiertas = servicio.listar_abiertas()
        caja_resumen = abiertas[0] if abiertas else None
    else:
        caja_resumen = servicio.resumen(caja) if caja else None

    return {
        "precioUnitario": float(config.precio_unitario()),
        "caja": caja_resumen.to_dict() if caja_resumen else None,
        "historial": [v.to_dict() for v in servicio.historial(25)],
        "closures": [r.to_dict() for r in servicio.listar_cierres(20)],
        "limite": config.limite_boletos(),
        "vendidos": servicio.boletos_vendidos(),
        "restante": servicio.stock_restante(),
    }


@router.post("/generar-visitantes")
async def accion_caja(
    datos: AccionCajaRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    usuario: Usuario = Depends(obtener_usuario_actual)
):
    accion = ACCIONES.get(datos.action)
    if accion is None:
        raise ValidationError("Acción no válida")

    verificar_permiso(usuario, PERMISOS_ACCIONES[datos.action])

    logger.debug(f"💵 Acción de caja '{datos.action}' por {usuario.email}")
    return accion(CajaService(db, mailer), datos, usuario)


@router.get("/generar-visitantes/exportar")
async def exportar_ventas(
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN, ROL_FINANCIERO))
):
    """Historial de ventas en Excel"""
    output = exportar_ventas_excel(db)
    nombre = f"ventas_{ahora().strftime('%Y%m%d_%H%M')}.xlsx"

    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={nombre}"}
    )
