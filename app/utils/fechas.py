"""
Utilidades de fecha en la zona horaria del evento
"""

from datetime import date, datetime, time
from typing import Optional, Tuple

import pytz

from app.config import settings


def ahora() -> datetime:
    """Fecha y hora local del evento, sin tzinfo (así se guarda en la BD)"""
    tz = pytz.timezone(settings.zona_horaria)
    return datetime.now(tz).replace(tzinfo=None)


def hoy() -> date:
    return ahora().date()


def rango_dia(fecha: date) -> Tuple[datetime, datetime]:
    """Inicio y fin (inclusive) de un día local"""
    return datetime.combine(fecha, time.min), datetime.combine(fecha, time.max)


def parsear_fecha(valor: Optional[str]) -> Optional[date]:
    """
    Convierte 'YYYY-MM-DD' en date.
    Devuelve None si el valor falta o no es una fecha válida.
    """
    if not valor:
        return None

    try:
        return datetime.strptime(valor.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None
