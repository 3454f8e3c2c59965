"""
Modelo: Turno de Caja
app/models/caja_turno.py

Periodo contable de un operador para la venta de boletos adicionales.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index, text
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils.fechas import ahora


class CajaTurno(Base):
    """
    Caja de un operador.

    Ciclo de vida: abierta -> cerrada (terminal).
    Un operador solo puede tener una caja abierta a la vez; lo garantiza
    el índice único parcial sobre abierto_por.
    """

    __tablename__ = "caja_turno"
    __table_args__ = (
        Index(
            "ux_caja_turno_abierta_por_operador",
            "abierto_por",
            unique=True,
            sqlite_where=text("abierto = 1"),
            postgresql_where=text("abierto"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    abierto = Column(Boolean, default=True, nullable=False)

    # Auditoría
    abierto_por = Column(String(191), nullable=False)
    abierto_at = Column(DateTime, default=ahora, nullable=False)
    cerrado_por = Column(String(191), nullable=True)
    cerrado_at = Column(DateTime, nullable=True)

    # Relaciones
    ventas = relationship("VentaAdicional", back_populates="caja", order_by="VentaAdicional.created_at")

    def __repr__(self):
        estado = "abierta" if self.abierto else "cerrada"
        return f"<CajaTurno(id={self.id}, {estado}, abierto_por='{self.abierto_por}')>"
