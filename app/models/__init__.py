from app.models.persona import Persona
from app.models.codigo_qr import CodigoQR
from app.models.ingreso import Ingreso
from app.models.importacion import Importacion
from app.models.caja_turno import CajaTurno
from app.models.venta_adicional import VentaAdicional
from app.models.configuracion import Configuracion

__all__ = [
    "Persona",
    "CodigoQR",
    "Ingreso",
    "Importacion",
    "CajaTurno",
    "VentaAdicional",
    "Configuracion",
]
