"""
EVENTOS QR - Limpieza administrativa
app/services/limpieza_service.py

Dos operaciones separadas, cada una con su propia frase de confirmación:
- purgar_datos: borra personas, códigos, ingresos, ventas, cajas e importaciones
- purgar_directorios: vacía los directorios monitoreados (QR generados, etc.)
"""

from typing import Dict, List
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import ValidationError
from app.models import CajaTurno, CodigoQR, Importacion, Ingreso, Persona, VentaAdicional
from app.services.configuracion_service import LIMPIEZA_KEY, ConfiguracionService
from app.utils.fechas import ahora
from app.utils.file_utils import ReporteDirectorio, reporte_directorio, vaciar_directorio

logger = logging.getLogger(__name__)

# Orden de borrado respetando las llaves foráneas
TABLAS = [
    ("ventas", VentaAdicional),
    ("ingresos", Ingreso),
    ("codigos", CodigoQR),
    ("personas", Persona),
    ("importaciones", Importacion),
    ("cajas", CajaTurno),
]


def contar_registros(db: Session) -> Dict[str, int]:
    return {
        nombre: db.execute(select(func.count()).select_from(modelo)).scalar_one()
        for nombre, modelo in TABLAS
    }


def reportes_directorios() -> List[ReporteDirectorio]:
    return [reporte_directorio(ruta) for ruta in settings.directorios_limpieza]


def estado_limpieza(db: Session) -> Dict:
    """Conteos, tamaño de directorios, última ejecución y frases requeridas"""
    return {
        "counts": contar_registros(db),
        "directories": [r.to_dict() for r in reportes_directorios()],
        "lastRun": ConfiguracionService(db).ultima_limpieza(),
        "confirmationPhrase": settings.frase_limpieza_datos,
        "filesConfirmationPhrase": settings.frase_limpieza_archivos,
    }


def purgar_datos(db: Session, confirmacion: str) -> Dict[str, int]:
    """
    Borra todos los datos operativos en una sola transacción.
    La configuración (precio, límite) se conserva.

    Raises:
        ValidationError: frase de confirmación incorrecta
    """
    if (confirmacion or "").strip() != settings.frase_limpieza_datos:
        raise ValidationError("Frase de confirmación incorrecta")

    eliminados = {}
    try:
        for nombre, modelo in TABLAS:
            eliminados[nombre] = db.execute(delete(modelo)).rowcount
        ConfiguracionService(db).set(LIMPIEZA_KEY, ahora().isoformat(), commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expunge_all()
    logger.warning(f"🧹 Limpieza de datos ejecutada: {eliminados}")
    return eliminados


def verificar_frase_archivos(confirmacion: str) -> None:
    if (confirmacion or "").strip() != settings.frase_limpieza_archivos:
        raise ValidationError("Frase de confirmación de archivos incorrecta")


def purgar_directorios(confirmacion: str) -> List[Dict]:
    """
    Vacía los directorios monitoreados. Un directorio inexistente o con
    error se reporta y no detiene el resto.

    Raises:
        ValidationError: frase de confirmación incorrecta
    """
    verificar_frase_archivos(confirmacion)

    resultados = []
    for ruta in settings.directorios_limpieza:
        reporte = reporte_directorio(ruta)
        if not reporte.exists:
            resultados.append(reporte.to_dict())
            continue

        try:
            archivos, total_bytes = vaciar_directorio(ruta)
            reporte = ReporteDirectorio(path=reporte.path, exists=True, files=archivos, bytes=total_bytes)
        except OSError as e:
            logger.error(f"❌ No se pudo vaciar {reporte.path}: {e}")
            reporte.error = str(e)

        resultados.append(reporte.to_dict())

    logger.warning(f"🧹 Limpieza de archivos ejecutada en {len(resultados)} directorio(s)")
    return resultados
