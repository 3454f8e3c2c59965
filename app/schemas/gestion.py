"""
Schemas de gestión de códigos y limpieza
"""

from typing import Optional, Union

from pydantic import BaseModel, Field


class ReenvioQRRequest(BaseModel):
    action: str = "resend"
    codigoId: int
    correo: Optional[str] = None


class ActualizarMaxUsosRequest(BaseModel):
    codigoId: int
    maxUsos: Union[int, float, str]


class LimpiezaRequest(BaseModel):
    """La limpieza de archivos solo corre si llega su propia frase"""
    confirmacion: str = Field("", description="Frase para borrar los datos")
    confirmacionArchivos: Optional[str] = Field(None, description="Frase para vaciar los directorios")
