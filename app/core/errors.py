"""
EVENTOS QR - Errores de dominio
app/core/errors.py

Cada error lleva su código HTTP y un tipo legible por máquina.
El handler registrado en app/main.py los convierte en:

    {"error": "<mensaje>", "tipo": "<TipoError>"}
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EventosError(Exception):
    """Error base de la aplicación"""

    status_code = 400
    mensaje_default = "Solicitud inválida"

    def __init__(self, mensaje: str = None):
        self.mensaje = mensaje or self.mensaje_default
        super().__init__(self.mensaje)

    @property
    def tipo(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.mensaje, "tipo": self.tipo}


class NotFoundError(EventosError):
    status_code = 404
    mensaje_default = "Recurso no encontrado"


class ExhaustedError(EventosError):
    mensaje_default = "QR ya ha sido usado al máximo"


class AlreadyOpenError(EventosError):
    mensaje_default = "Ya existe una caja abierta"


class SessionNotOpenError(EventosError):
    mensaje_default = "No hay una caja abierta"


class SessionStillOpenError(EventosError):
    mensaje_default = "La caja sigue abierta"


class InvalidCapError(EventosError):
    mensaje_default = "El número de entradas debe ser un entero positivo"


class LimitExceededError(EventosError):
    mensaje_default = "Se alcanzó el límite global de boletos"


class UnauthorizedError(EventosError):
    status_code = 403
    mensaje_default = "No autorizado"


class ValidationError(EventosError):
    mensaje_default = "Datos inválidos"


class ExternalServiceError(EventosError):
    status_code = 502
    mensaje_default = "Error en servicio externo"


# ============================================================================
# HANDLERS
# ============================================================================

async def eventos_error_handler(request: Request, exc: EventosError):
    logger.info(f"{exc.tipo} en {request.url.path}: {exc.mensaje}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def error_interno_handler(request: Request, exc: Exception):
    logger.exception(f"Error no controlado en {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Error interno"})
