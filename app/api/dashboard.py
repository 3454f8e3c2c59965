"""
EVENTOS QR - API de Dashboard
app/api/dashboard.py
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.security import Usuario, requiere_rol
from app.database import get_db
from app.services.dashboard_service import resumen_diario
from app.utils.fechas import parsear_fecha

router = APIRouter()


@router.get("/dashboard")
async def dashboard(
    date: Optional[str] = Query(None, description="Día a consultar (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    usuario: Usuario = Depends(requiere_rol())
):
    """
    Ingresos del día indicado agrupados por código, más el total de hoy.
    Sin fecha (o con una fecha inválida) se resume todo el historial.
    """
    return resumen_diario(db, parsear_fecha(date))
