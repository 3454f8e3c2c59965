import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.config import settings


def setup_logging():
    """Configura el logging de la aplicación"""

    logger = logging.getLogger()
    logger.setLevel(settings.log_level.upper())

    # Evitar handlers duplicados si se llama dos veces
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Archivo rotativo (opcional: si no hay permisos seguimos solo con consola)
    try:
        Path(settings.log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            Path(settings.log_dir) / "eventos.log",
            maxBytes=10485760,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"⚠️ No se pudo crear el log en archivo: {e}")

    # Silenciar librerías ruidosas
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)
