from app.schemas.ingreso import IngresoRequest, GenerarQRRequest
from app.schemas.caja import AccionCajaRequest
from app.schemas.gestion import ReenvioQRRequest, ActualizarMaxUsosRequest, LimpiezaRequest

__all__ = [
    "IngresoRequest",
    "GenerarQRRequest",
    "AccionCajaRequest",
    "ReenvioQRRequest",
    "ActualizarMaxUsosRequest",
    "LimpiezaRequest",
]
