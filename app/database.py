"""
Configuración de la base de datos
SQLAlchemy setup para PostgreSQL (SQLite en desarrollo y pruebas)
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import logging

from app.config import settings

logger = logging.getLogger(__name__)


def _crear_engine(url: str):
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if url.startswith("sqlite"):
        # varios hilos comparten el archivo (TestClient, streaming)
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=settings.debug
        )

    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verifica conexiones antes de usarlas
        pool_recycle=3600,   # Recicla conexiones cada hora
        echo=settings.debug  # Log de queries SQL en modo debug
    )


# Crear engine de SQLAlchemy
engine = _crear_engine(settings.database_url)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)

# Base para los modelos
Base = declarative_base()


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Se ejecuta cuando se establece una nueva conexión"""
    if engine.dialect.name == "sqlite":
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    logger.debug("Nueva conexión a la base de datos establecida")


def get_db() -> Generator[Session, None, None]:
    """
    Dependency para FastAPI
    Crea una sesión de BD para cada request y la cierra al terminar

    Uso:
        @app.get("/ejemplo")
        def ejemplo(db: Session = Depends(get_db)):
            # usar db aquí
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Inicializa la base de datos
    Crea todas las tablas si no existen
    """
    logger.info("Inicializando base de datos...")

    # Importar todos los modelos para que SQLAlchemy los conozca
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    logger.info("✅ Base de datos inicializada correctamente")


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Conexión a base de datos exitosa")
        return True
    except Exception as e:
        logger.error(f"❌ Error conectando a base de datos: {e}")
        return False


def drop_all_tables():
    """
    CUIDADO: Elimina todas las tablas
    Solo para desarrollo/testing
    """
    if settings.environment == "production":
        raise RuntimeError("No se pueden eliminar tablas en modo producción")

    logger.warning("⚠️  ELIMINANDO TODAS LAS TABLAS...")
    Base.metadata.drop_all(bind=engine)
    logger.warning("✅ Tablas eliminadas")


class DatabaseSession:
    """
    Context manager para manejar sesiones de BD fuera de un request

    Uso:
        with DatabaseSession() as db:
            persona = db.query(Persona).first()
    """

    def __enter__(self) -> Session:
        self.db = SessionLocal()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.db.rollback()
            logger.error(f"Error en transacción de BD: {exc_val}")
        self.db.close()
