"""
EVENTOS QR - API de Gestión de códigos
app/api/gestion_qr.py

- GET    consulta de una persona y sus códigos por cédula
- POST   reenvío del QR por correo
- PATCH  ajuste del límite de usos
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.security import ROL_ADMIN, Usuario, requiere_rol
from app.database import get_db
from app.schemas import ActualizarMaxUsosRequest, ReenvioQRRequest
from app.services.codigo_qr_service import actualizar_max_usos, consultar_por_cedula, reenviar_qr, resumen_codigo
from app.services.mailer import Mailer, get_mailer

router = APIRouter()


@router.get("/gestion-qr")
async def consultar(
    cedula: str = Query(""),
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    return {"persona": consultar_por_cedula(db, cedula)}


@router.post("/gestion-qr")
async def reenviar(
    datos: ReenvioQRRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    if datos.action != "resend":
        raise ValidationError("Acción no soportada")

    reenviar_qr(db, mailer, datos.codigoId, datos.correo)
    return {"success": True, "mensaje": "QR reenviado correctamente"}


@router.patch("/gestion-qr")
async def actualizar_limite_usos(
    datos: ActualizarMaxUsosRequest,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    codigo = actualizar_max_usos(db, datos.codigoId, datos.maxUsos)
    return {"success": True, "codigo": resumen_codigo(db, codigo)}
