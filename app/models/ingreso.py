"""
Modelo de Ingreso
Registro inmutable de cada lectura exitosa de un QR
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils.fechas import ahora


class Ingreso(Base):
    __tablename__ = "ingreso"

    id_ingreso = Column(Integer, primary_key=True, index=True)
    fecha = Column(DateTime, default=ahora, nullable=False, index=True)
    codigoqr_id = Column(Integer, ForeignKey("codigoqr.id_codigo", ondelete="RESTRICT"), nullable=False, index=True)

    codigoqr = relationship("CodigoQR", back_populates="ingresos")

    def __repr__(self):
        return f"<Ingreso(id={self.id_ingreso}, codigoqr_id={self.codigoqr_id}, fecha={self.fecha})>"
