"""
Schema de las acciones de caja (POST /generar-visitantes)
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


class AccionCajaRequest(BaseModel):
    """
    Un solo cuerpo para todas las acciones; cada acción usa sus campos:

    - generate:       cantidad, correo, enviarCorreo
    - updatePrice:    precio
    - updateLimit:    limite
    - details / deleteClosure / forceClose: cajaId
    - closures:       limit
    """
    model_config = ConfigDict(extra="ignore")

    action: str
    cantidad: Optional[Union[int, str]] = None
    correo: Optional[str] = None
    enviarCorreo: bool = False
    precio: Optional[Union[float, str]] = None
    limite: Optional[Union[int, str]] = None
    cajaId: Optional[int] = None
    limit: Optional[int] = None

    @field_validator("action")
    @classmethod
    def normalizar_accion(cls, v):
        return v.strip()
