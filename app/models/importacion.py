"""
Modelo de Importación
Bitácora de cada carga masiva desde Excel/CSV
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON

from app.database import Base
from app.utils.fechas import ahora


class Importacion(Base):
    __tablename__ = "importacion"

    id = Column(Integer, primary_key=True, index=True)
    archivo = Column(String(191), nullable=False)
    usuario = Column(String(191), nullable=True)
    fecha = Column(DateTime, default=ahora, nullable=False)

    # Resultados (se actualizan al finalizar, aunque el cliente se desconecte)
    total_registros = Column(Integer, default=0, nullable=False)
    exitosos = Column(Integer, default=0, nullable=False)
    fallidos = Column(Integer, default=0, nullable=False)
    errores = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<Importacion(id={self.id}, archivo='{self.archivo}', exitosos={self.exitosos}, fallidos={self.fallidos})>"
