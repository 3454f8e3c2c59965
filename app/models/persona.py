"""
Modelo de Persona
Representa a cada asistente del evento (estudiante, familiar o visitante)
"""

from sqlalchemy import Column, Integer, String, Boolean, Enum
from sqlalchemy.orm import relationship

from app.database import Base

TIPOS_PERSONA = ("estudiante", "familiar", "visitante")


class Persona(Base):
    """
    Modelo de Persona

    Se crea en la importación masiva o en la generación puntual de QR.
    Se busca por cédula para no duplicar registros.
    """

    __tablename__ = "persona"

    id_persona = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(191), nullable=False)
    apellido = Column(String(191), nullable=True)
    cedula = Column(String(191), unique=True, nullable=True, index=True)
    correo = Column(String(191), nullable=True)
    tipo_persona = Column(Enum(*TIPOS_PERSONA, name="tipo_persona"), nullable=False)
    estado = Column(Boolean, default=True, nullable=False)

    # Relaciones
    codigos = relationship("CodigoQR", back_populates="persona")

    @property
    def nombre_completo(self) -> str:
        """Nombre y apellido, sin espacios sobrantes"""
        return " ".join(p for p in [self.nombre, self.apellido or ""] if p).strip()

    def __repr__(self):
        return f"<Persona(cedula='{self.cedula}', nombre='{self.nombre_completo}')>"

    def to_dict(self) -> dict:
        return {
            "id": self.id_persona,
            "nombre": self.nombre,
            "apellido": self.apellido,
            "correo": self.correo,
            "cedula": self.cedula,
            "tipo": self.tipo_persona,
        }
