"""
EVENTOS QR - API Routers
app/api/__init__.py

Importa y exporta todos los routers modulares.
"""

from .ingreso import router as ingreso_router
from .generar_qr import router as generar_qr_router
from .estudiante import router as estudiante_router
from .caja import router as caja_router
from .importar import router as importar_router
from .dashboard import router as dashboard_router
from .gestion_qr import router as gestion_qr_router
from .limpieza import router as limpieza_router

__all__ = [
    "ingreso_router",
    "generar_qr_router",
    "estudiante_router",
    "caja_router",
    "importar_router",
    "dashboard_router",
    "gestion_qr_router",
    "limpieza_router",
]
