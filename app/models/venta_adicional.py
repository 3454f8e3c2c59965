"""
Modelo: Venta Adicional
app/models/venta_adicional.py

Venta de boletos en puerta, ligada a una caja y a un código QR.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils.fechas import ahora


class VentaAdicional(Base):
    __tablename__ = "venta_adicional"
    __table_args__ = (
        CheckConstraint("cantidad > 0", name="ck_venta_cantidad_positiva"),
    )

    id = Column(Integer, primary_key=True, index=True)
    codigo_id = Column(Integer, ForeignKey("codigoqr.id_codigo", ondelete="RESTRICT"), nullable=False, index=True)
    caja_id = Column(Integer, ForeignKey("caja_turno.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Datos de la venta
    precio = Column(Numeric(10, 2), nullable=False)  # precio unitario
    cantidad = Column(Integer, nullable=False, default=1)

    # Entrega
    correo = Column(String(191), nullable=True)
    enviado_por_correo = Column(Boolean, default=False, nullable=False)

    # Auditoría
    created_at = Column(DateTime, default=ahora, nullable=False)

    # Relaciones
    codigo = relationship("CodigoQR", back_populates="ventas")
    caja = relationship("CajaTurno", back_populates="ventas")

    @property
    def total(self) -> Decimal:
        return Decimal(self.precio) * self.cantidad

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "codigo": self.codigo.codigo if self.codigo else None,
            "precio": float(self.precio),
            "cantidad": self.cantidad,
            "total": float(self.total),
            "correo": self.correo,
            "enviadoPorCorreo": self.enviado_por_correo,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "cajaId": self.caja_id,
        }
