"""
Schemas de Pydantic para ingreso y generación puntual de QR
"""

from typing import Optional, Union

from pydantic import BaseModel, Field


class IngresoRequest(BaseModel):
    """Código leído por el escáner"""
    codigo: Optional[str] = Field(None, max_length=191)


class GenerarQRRequest(BaseModel):
    """
    Generación puntual de un QR adicional.

    max_usos se valida en el servicio para responder InvalidCapError
    en lugar de un 422 genérico.
    """
    esEstudiante: bool = False
    cedula: Optional[str] = None
    max_usos: Optional[Union[int, float, str]] = 1
