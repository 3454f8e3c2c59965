"""
EVENTOS QR - API de Ingreso
app/api/ingreso.py

Punto de control: el escáner envía el código leído.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import Usuario, requiere_rol
from app.database import get_db
from app.schemas import IngresoRequest
from app.services.ingreso_service import registrar_ingreso

router = APIRouter()


@router.post("/ingreso")
async def registrar(
    datos: IngresoRequest,
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol())
):
    """Valida el código y descuenta un uso"""
    resultado = registrar_ingreso(db, datos.codigo)

    return {
        "success": True,
        "message": resultado.mensaje,
        "codigo": resultado.codigo,
        "usosActual": resultado.usos_actual,
        "maxUsos": resultado.max_usos,
        "disponibles": resultado.disponibles,
    }
