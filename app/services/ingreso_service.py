"""
EVENTOS QR - Servicio de Ingreso
app/services/ingreso_service.py

Valida un código escaneado y registra el ingreso.

El incremento es un UPDATE condicionado (usos_actual < max_usos) y se
revisa cuántas filas afectó: de N lecturas simultáneas sobre un QR con
un solo uso disponible, solo una puede pasar.
"""

from dataclasses import dataclass
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.errors import ExhaustedError, NotFoundError, ValidationError
from app.models import CodigoQR, Ingreso
from app.utils.fechas import ahora

logger = logging.getLogger(__name__)


@dataclass
class ResultadoIngreso:
    codigo: str
    usos_actual: int
    max_usos: int

    @property
    def disponibles(self) -> int:
        return self.max_usos - self.usos_actual

    @property
    def mensaje(self) -> str:
        return f"✅ Ingreso registrado: Disponibles {self.disponibles} de {self.max_usos}"


def registrar_ingreso(db: Session, codigo: str) -> ResultadoIngreso:
    """
    Registra un ingreso para el código escaneado.

    Args:
        db: Sesión de base de datos
        codigo: Texto leído del QR

    Returns:
        ResultadoIngreso con los usos tras el incremento

    Raises:
        ValidationError: código vacío
        NotFoundError: el código no existe
        ExhaustedError: el código ya no tiene usos disponibles
    """
    codigo = (codigo or "").strip()
    if not codigo:
        raise ValidationError("Código vacío")

    qr = db.execute(
        select(CodigoQR.id_codigo, CodigoQR.usos_actual, CodigoQR.max_usos)
        .where(CodigoQR.codigo == codigo)
    ).first()

    if qr is None:
        raise NotFoundError("QR no encontrado")

    if qr.usos_actual >= qr.max_usos:
        raise ExhaustedError("QR ya ha sido usado al máximo")

    try:
        resultado = db.execute(
            update(CodigoQR)
            .where(
                CodigoQR.id_codigo == qr.id_codigo,
                CodigoQR.usos_actual < CodigoQR.max_usos
            )
            .values(usos_actual=CodigoQR.usos_actual + 1)
            .execution_options(synchronize_session=False)
        )

        if resultado.rowcount != 1:
            # Otra lectura consumió el último uso entre el SELECT y el UPDATE
            db.rollback()
            raise ExhaustedError("QR ya ha sido usado al máximo")

        db.add(Ingreso(codigoqr_id=qr.id_codigo, fecha=ahora()))

        # el UPDATE no toca el mapa de identidad; se recarga la fila
        actualizado = db.get(CodigoQR, qr.id_codigo, populate_existing=True)

        db.commit()
    except ExhaustedError:
        raise
    except Exception:
        db.rollback()
        raise

    logger.info(f"🚪 Ingreso {codigo}: {actualizado.usos_actual}/{actualizado.max_usos}")

    return ResultadoIngreso(
        codigo=codigo,
        usos_actual=actualizado.usos_actual,
        max_usos=actualizado.max_usos
    )
