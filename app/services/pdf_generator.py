"""
Generador de PDFs: boleto adicional y reporte de cierre de caja
"""

from decimal import Decimal
from io import BytesIO
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.config import settings
from app.utils.fechas import ahora

AZUL = colors.HexColor("#003976")
AZUL_CLARO = colors.HexColor("#29598c")
TEXTO = colors.HexColor("#0b1d33")


def _dinero(valor) -> str:
    return f"${Decimal(valor):.2f}"


def _fecha(valor) -> str:
    return valor.strftime("%d/%m/%Y %H:%M") if valor else "-"


def generar_boleto_pdf(
    codigo: str,
    qr_png: bytes,
    cantidad: int,
    precio_unitario: Decimal,
    total: Decimal
) -> bytes:
    """
    Boleto adicional: datos de la compra y el QR centrado
    """
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    # ========================================================================
    # MARCO
    # ========================================================================
    margen = 1.2 * cm
    c.setStrokeColor(AZUL)
    c.setLineWidth(2)
    c.roundRect(margen, margen, width - 2*margen, height - 2*margen, 16)

    # ========================================================================
    # ENCABEZADO
    # ========================================================================
    y = height - 3*cm
    c.setFillColor(AZUL)
    c.setFont("Helvetica-Bold", 22)
    c.drawCentredString(width/2, y, settings.nombre_evento)

    y -= 1*cm
    c.setFillColor(AZUL_CLARO)
    c.setFont("Helvetica", 14)
    c.drawCentredString(width/2, y, "Boleto adicional")

    # ========================================================================
    # DATOS DE LA COMPRA
    # ========================================================================
    c.setFillColor(TEXTO)
    c.setFont("Helvetica", 12)
    for linea in [
        f"Código: {codigo}",
        f"Capacidad: {cantidad} ingreso(s)",
        f"Precio unitario: {_dinero(precio_unitario)}",
        f"Total de la compra: {_dinero(total)}",
    ]:
        y -= 0.8*cm
        c.drawCentredString(width/2, y, linea)

    # ========================================================================
    # QR
    # ========================================================================
    lado = 8*cm
    x = (width - lado) / 2
    y -= lado + 1.5*cm
    c.drawImage(ImageReader(BytesIO(qr_png)), x, y, width=lado, height=lado, preserveAspectRatio=True)

    y -= 0.8*cm
    c.setFillColor(AZUL_CLARO)
    c.setFont("Helvetica", 10)
    c.drawCentredString(width/2, y, "Presenta este código en el punto de control")

    c.showPage()
    c.save()
    return buffer.getvalue()


def generar_reporte_cierre_pdf(resumen, ventas: List) -> bytes:
    """
    Reporte de cierre de caja con el detalle de ventas.

    Args:
        resumen: ResumenCierre de la caja
        ventas: VentaAdicional de la caja, en orden de creación
    """
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    margen = 1.8*cm

    y = height - 2.5*cm
    c.setFillColor(AZUL)
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(width/2, y, "Reporte de cierre de caja")

    c.setFillColor(TEXTO)
    c.setFont("Helvetica", 11)
    y -= 1.2*cm
    for linea in [
        f"Caja ID: {resumen.id}",
        f"Abierta por: {resumen.abierto_por or '-'}",
        f"Fecha apertura: {_fecha(resumen.abierto_at)}",
        f"Cerrada por: {resumen.cerrado_por or '-'}",
        f"Fecha cierre: {_fecha(resumen.cerrado_at or ahora())}",
    ]:
        c.drawString(margen, y, linea)
        y -= 0.6*cm

    y -= 0.4*cm
    c.setFillColor(AZUL_CLARO)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(margen, y, f"Total boletos emitidos: {resumen.total_boletos}")
    y -= 0.6*cm
    c.drawString(margen, y, f"Total recaudado: {_dinero(resumen.total_recaudado)}")

    y -= 1*cm
    c.setFillColor(AZUL)
    c.drawString(margen, y, "Detalle de ventas")
    y -= 0.7*cm

    c.setFillColor(TEXTO)
    c.setFont("Helvetica", 9)
    for i, venta in enumerate(ventas, 1):
        if y < 2*cm:
            c.showPage()
            c.setFont("Helvetica", 9)
            y = height - 2*cm

        c.drawString(
            margen, y,
            f"{i}. Código: {venta.codigo.codigo} | Cantidad: {venta.cantidad} | "
            f"Unitario: {_dinero(venta.precio)} | Total: {_dinero(venta.total)} | "
            f"Fecha: {_fecha(venta.created_at)}"
        )
        y -= 0.5*cm

    c.showPage()
    c.save()
    return buffer.getvalue()
