"""
EVENTOS QR - Servicio de Configuración
app/services/configuracion_service.py

Configuración global en la tabla clave-valor `configuracion`.
Los valores por defecto se crean una sola vez al iniciar la aplicación
(inicializar_configuracion), no en cada handler.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import ValidationError
from app.models import Configuracion
from app.utils.fechas import ahora

logger = logging.getLogger(__name__)

PRECIO_KEY = "precio_boleto"
LIMITE_KEY = "limite_boletos"
LIMPIEZA_KEY = "limpieza_last_run"


def valores_por_defecto() -> Dict[str, str]:
    return {
        PRECIO_KEY: settings.precio_boleto_default,
        LIMITE_KEY: settings.limite_boletos_default,
    }


class ConfiguracionService:
    """Lectura/escritura tipada de la configuración global"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, clave: str, default: Optional[str] = None) -> Optional[str]:
        registro = self.db.get(Configuracion, clave)
        if registro is None:
            return default
        return registro.valor

    def get_decimal(self, clave: str, default: Decimal = Decimal("0")) -> Decimal:
        valor = self.get(clave)
        if valor is None:
            return default
        try:
            return Decimal(valor)
        except InvalidOperation:
            logger.warning(f"⚠️ Valor no numérico en configuración {clave}={valor!r}")
            return default

    def get_int(self, clave: str, default: int = 0) -> int:
        valor = self.get(clave)
        if valor is None:
            return default
        try:
            return int(valor)
        except ValueError:
            logger.warning(f"⚠️ Valor no entero en configuración {clave}={valor!r}")
            return default

    def set(self, clave: str, valor, commit: bool = True) -> Configuracion:
        """Crea o actualiza la clave (el último en escribir gana)"""
        registro = self.db.get(Configuracion, clave)
        if registro is None:
            registro = Configuracion(clave=clave, valor=str(valor))
            self.db.add(registro)
        else:
            registro.valor = str(valor)
            registro.actualizado_en = ahora()

        if commit:
            self.db.commit()
        return registro

    # ------------------------------------------------------------------
    # Claves conocidas
    # ------------------------------------------------------------------

    def precio_unitario(self) -> Decimal:
        return self.get_decimal(PRECIO_KEY, Decimal(settings.precio_boleto_default))

    def actualizar_precio(self, precio) -> Decimal:
        try:
            nuevo = Decimal(str(precio))
        except (InvalidOperation, TypeError):
            raise ValidationError("Precio inválido")

        if not nuevo.is_finite() or nuevo < 0:
            raise ValidationError("Precio inválido")

        nuevo = nuevo.quantize(Decimal("0.01"))
        self.set(PRECIO_KEY, nuevo)
        logger.info(f"💲 Precio unitario actualizado a {nuevo}")
        return nuevo

    def limite_boletos(self) -> int:
        """0 significa sin límite"""
        return self.get_int(LIMITE_KEY, int(settings.limite_boletos_default))

    def actualizar_limite(self, limite) -> int:
        try:
            nuevo = int(str(limite).strip())
        except ValueError:
            raise ValidationError("Límite inválido")

        if nuevo < 0:
            raise ValidationError("Límite inválido")

        self.set(LIMITE_KEY, nuevo)
        logger.info(f"🎟️ Límite global de boletos actualizado a {nuevo}")
        return nuevo

    def ultima_limpieza(self) -> Optional[str]:
        return self.get(LIMPIEZA_KEY)


def inicializar_configuracion(db: Session) -> None:
    """Crea las claves por defecto que falten. Se llama al iniciar la app."""
    servicio = ConfiguracionService(db)
    creadas = []

    for clave, valor in valores_por_defecto().items():
        if servicio.get(clave) is None:
            servicio.set(clave, valor, commit=False)
            creadas.append(clave)

    db.commit()

    if creadas:
        logger.info(f"⚙️ Configuración inicial creada: {', '.join(creadas)}")
