"""
EVENTOS QR - Services __init__.py
app/services/__init__.py

Exporta los servicios para fácil importación
"""

# ============================================================================
# INGRESO Y CÓDIGOS
# ============================================================================
from app.services.ingreso_service import ResultadoIngreso, registrar_ingreso
from app.services.codigo_qr_service import (
    actualizar_max_usos,
    consultar_por_cedula,
    emitir_codigo,
    generar_qr_estudiante,
    generar_qr_visitante,
    reenviar_qr,
)

# ============================================================================
# CAJA Y CONFIGURACIÓN
# ============================================================================
from app.services.caja_service import CajaService, ResumenCierre, ResultadoVenta
from app.services.configuracion_service import ConfiguracionService, inicializar_configuracion

# ============================================================================
# REPORTES, IMPORTACIÓN Y LIMPIEZA
# ============================================================================
from app.services.dashboard_service import resumen_diario, resumir_ingresos
from app.services.exportacion import exportar_ventas_excel
from app.services.importacion_service import importar_personas, leer_filas
from app.services.limpieza_service import estado_limpieza, purgar_datos, purgar_directorios
from app.services.mailer import Mailer, get_mailer

__all__ = [
    "ResultadoIngreso",
    "registrar_ingreso",
    "actualizar_max_usos",
    "consultar_por_cedula",
    "emitir_codigo",
    "generar_qr_estudiante",
    "generar_qr_visitante",
    "reenviar_qr",
    "CajaService",
    "ResumenCierre",
    "ResultadoVenta",
    "ConfiguracionService",
    "inicializar_configuracion",
    "resumen_diario",
    "resumir_ingresos",
    "exportar_ventas_excel",
    "importar_personas",
    "leer_filas",
    "estado_limpieza",
    "purgar_datos",
    "purgar_directorios",
    "Mailer",
    "get_mailer",
]
