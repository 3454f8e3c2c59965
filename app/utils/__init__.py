"""
Utilidades del sistema
"""

from .codigo_generator import generar_codigo_qr, prefijo_para
from .fechas import ahora, hoy, rango_dia, parsear_fecha
from .file_utils import reporte_directorio, vaciar_directorio, nombre_archivo_importacion

__all__ = [
    'generar_codigo_qr',
    'prefijo_para',
    'ahora',
    'hoy',
    'rango_dia',
    'parsear_fecha',
    'reporte_directorio',
    'vaciar_directorio',
    'nombre_archivo_importacion',
]
