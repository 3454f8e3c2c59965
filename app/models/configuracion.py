"""
Modelo de Configuración
Pares clave-valor de configuración global (precio, límite de boletos...)
"""

from sqlalchemy import Column, String, DateTime

from app.database import Base
from app.utils.fechas import ahora


class Configuracion(Base):
    __tablename__ = "configuracion"

    clave = Column(String(191), primary_key=True)
    valor = Column(String(191), nullable=False)
    actualizado_en = Column(DateTime, default=ahora, onupdate=ahora, nullable=False)

    def __repr__(self):
        return f"<Configuracion({self.clave}={self.valor})>"
