"""
Generador de imágenes QR (PNG) con leyenda debajo
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
import base64
import logging

import qrcode
from PIL import Image, ImageDraw, ImageFont

from app.config import settings

logger = logging.getLogger(__name__)

ALTO_LEYENDA = 40


@dataclass
class QRAsset:
    nombre_archivo: str
    contenido: bytes
    ruta: Path

    @property
    def data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.contenido).decode("ascii")


def _fuente(tamano: int = 20):
    try:
        return ImageFont.truetype("DejaVuSans.ttf", tamano)
    except OSError:
        return ImageFont.load_default()


def generar_qr_png(codigo: str, leyenda: str, nombre_archivo: str = None) -> QRAsset:
    """
    Genera el PNG del QR con la leyenda centrada debajo y lo guarda
    en settings.qr_dir.

    Args:
        codigo: Texto que codifica el QR
        leyenda: Texto visible bajo el QR (nombre, "VISITANTE", ...)
        nombre_archivo: Nombre del PNG (por defecto <codigo>.png)
    """
    nombre_archivo = nombre_archivo or f"{codigo}.png"

    qr = qrcode.QRCode(version=1, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=10, border=2)
    qr.add_data(codigo)
    qr.make(fit=True)
    img_qr = qr.make_image(fill_color="black", back_color="white").convert("RGB")

    ancho, alto = img_qr.size
    lienzo = Image.new("RGB", (ancho, alto + ALTO_LEYENDA), "white")
    lienzo.paste(img_qr, (0, 0))

    if leyenda:
        draw = ImageDraw.Draw(lienzo)
        fuente = _fuente()
        izquierda, _, derecha, _ = draw.textbbox((0, 0), leyenda, font=fuente)
        x = max((ancho - (derecha - izquierda)) // 2, 0)
        draw.text((x, alto + 8), leyenda, fill="black", font=fuente)

    buffer = BytesIO()
    lienzo.save(buffer, format="PNG")
    contenido = buffer.getvalue()

    qr_dir = Path(settings.qr_dir)
    qr_dir.mkdir(parents=True, exist_ok=True)
    ruta = qr_dir / nombre_archivo
    ruta.write_bytes(contenido)

    logger.debug(f"🖼️ QR generado: {ruta}")

    return QRAsset(nombre_archivo=nombre_archivo, contenido=contenido, ruta=ruta)
