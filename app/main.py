"""
EVENTOS QR - Control de ingreso, boletería y caja
app/main.py

Solo contiene:
- Configuración de FastAPI
- Registro de routers y handlers de error
- Health check
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import (
    caja_router,
    dashboard_router,
    estudiante_router,
    generar_qr_router,
    gestion_qr_router,
    importar_router,
    ingreso_router,
    limpieza_router,
)
from app.config import print_settings_summary, settings
from app.core.errors import EventosError, error_interno_handler, eventos_error_handler
from app.core.logging import setup_logging
from app.database import DatabaseSession, check_db_connection, init_db
from app.services.configuracion_service import inicializar_configuracion

logger = logging.getLogger(__name__)


# ============================================================================
# CICLO DE VIDA
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    print_settings_summary()

    Path(settings.qr_dir).mkdir(parents=True, exist_ok=True)

    init_db()
    with DatabaseSession() as db:
        inicializar_configuracion(db)

    logger.info(f"🚀 {settings.app_name} v{settings.app_version} iniciado ({settings.environment})")
    yield
    logger.info("👋 Aplicación detenida")


# ============================================================================
# INICIALIZAR FASTAPI
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Control de ingreso con códigos QR, venta de boletos y caja",
    version=settings.app_version,
    lifespan=lifespan
)

# ============================================================================
# MIDDLEWARE
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# ERRORES
# ============================================================================

app.add_exception_handler(EventosError, eventos_error_handler)
app.add_exception_handler(Exception, error_interno_handler)

# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(ingreso_router, prefix="/api", tags=["Ingreso"])
app.include_router(generar_qr_router, prefix="/api", tags=["Generación QR"])
app.include_router(estudiante_router, prefix="/api", tags=["Generación QR"])
app.include_router(caja_router, prefix="/api", tags=["Caja"])
app.include_router(importar_router, prefix="/api", tags=["Importación"])
app.include_router(dashboard_router, prefix="/api", tags=["Dashboard"])
app.include_router(gestion_qr_router, prefix="/api", tags=["Gestión QR"])
app.include_router(limpieza_router, prefix="/api", tags=["Limpieza"])


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    db_ok = check_db_connection()
    return {
        "status": "healthy" if db_ok else "degraded",
        "service": settings.app_name,
        "version": settings.app_version,
        "database": db_ok,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
