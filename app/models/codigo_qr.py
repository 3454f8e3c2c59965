"""
Modelo de Código QR
Código de acceso con límite de usos y contador
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship

from app.database import Base

TIPOS_QR = ("est", "fam", "vis")


class CodigoQR(Base):
    """
    Código QR de acceso.

    Invariante: 0 <= usos_actual <= max_usos.
    Solo cambia por un ingreso (incremento) o por ajuste administrativo del límite.
    """

    __tablename__ = "codigoqr"
    __table_args__ = (
        CheckConstraint("max_usos > 0", name="ck_codigoqr_max_usos_positivo"),
        CheckConstraint("usos_actual >= 0 AND usos_actual <= max_usos", name="ck_codigoqr_usos_en_rango"),
    )

    id_codigo = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(191), unique=True, nullable=False, index=True)
    tipo_qr = Column(Enum(*TIPOS_QR, name="tipo_qr"), nullable=False)
    max_usos = Column(Integer, nullable=False, default=1)
    usos_actual = Column(Integer, nullable=False, default=0)

    persona_id = Column(Integer, ForeignKey("persona.id_persona", ondelete="SET NULL"), nullable=True, index=True)

    # Relaciones
    persona = relationship("Persona", back_populates="codigos")
    ingresos = relationship("Ingreso", back_populates="codigoqr", order_by="Ingreso.fecha.desc()")
    ventas = relationship("VentaAdicional", back_populates="codigo")

    @property
    def disponibles(self) -> int:
        return max(self.max_usos - self.usos_actual, 0)

    def __repr__(self):
        return f"<CodigoQR(codigo='{self.codigo}', usos={self.usos_actual}/{self.max_usos})>"
