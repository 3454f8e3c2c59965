"""
EVENTOS QR - API de Generación puntual de QR
app/api/generar_qr.py

QR adicional para un estudiante (por cédula, enviado a su correo) o
para un visitante (se devuelve la imagen).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import ROL_ADMIN, Usuario, requiere_rol
from app.database import get_db
from app.schemas import GenerarQRRequest
from app.services.codigo_qr_service import generar_qr_estudiante, generar_qr_visitante
from app.services.mailer import Mailer, get_mailer

router = APIRouter()


@router.post("/generar-qr")
async def generar_qr(
    datos: GenerarQRRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    if datos.esEstudiante:
        return generar_qr_estudiante(db, mailer, datos.cedula, datos.max_usos)

    return generar_qr_visitante(db, datos.max_usos)
