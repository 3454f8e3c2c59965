"""
EVENTOS QR - API de Limpieza
app/api/limpieza.py

La limpieza de datos y la de archivos llevan frases distintas; los
directorios solo se vacían si llega confirmacionArchivos.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import ROL_ADMIN, Usuario, requiere_rol
from app.database import get_db
from app.schemas import LimpiezaRequest
from app.services.limpieza_service import (
    estado_limpieza,
    purgar_datos,
    purgar_directorios,
    verificar_frase_archivos,
)

router = APIRouter()


@router.get("/limpieza")
async def estado(
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    return estado_limpieza(db)


@router.post("/limpieza")
async def limpiar(
    datos: LimpiezaRequest,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    # una frase de archivos incorrecta no debe dejar los datos ya borrados
    if datos.confirmacionArchivos:
        verificar_frase_archivos(datos.confirmacionArchivos)

    eliminados = purgar_datos(db, datos.confirmacion)

    directorios = None
    if datos.confirmacionArchivos:
        directorios = purgar_directorios(datos.confirmacionArchivos)

    respuesta = estado_limpieza(db)
    respuesta.update({
        "success": True,
        "deleted": eliminados,
        "purgedDirectories": directorios,
    })
    return respuesta
