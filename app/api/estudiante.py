"""
EVENTOS QR - API de consulta de estudiante
app/api/estudiante.py
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import ROL_ADMIN, Usuario, requiere_rol
from app.database import get_db
from app.services.codigo_qr_service import buscar_estudiante

router = APIRouter()


@router.get("/estudiante/{cedula}")
async def obtener_estudiante(
    cedula: str,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    """Datos del estudiante para el formulario de generación de QR"""
    persona = buscar_estudiante(db, cedula)
    return persona.to_dict()
