"""
Reporte de cierre de caja: PDF con el detalle de ventas enviado por
correo a los destinatarios configurados.
"""

from typing import List
import logging

from app.config import settings
from app.services.mailer import Adjunto, Mailer, renderizar
from app.services.pdf_generator import generar_reporte_cierre_pdf

logger = logging.getLogger(__name__)


def enviar_reporte_cierre(mailer: Mailer, resumen, ventas: List) -> bool:
    """
    Genera y envía el reporte. Devuelve False si no hay destinatarios.

    Raises:
        ExternalServiceError: fallo del servidor de correo
    """
    destinatarios = [d for d in settings.destinatarios_reporte if d]
    if not destinatarios:
        logger.warning(f"⚠️ Caja {resumen.id}: no hay destinatarios para el reporte de cierre")
        return False

    pdf = generar_reporte_cierre_pdf(resumen, ventas)
    fecha = resumen.cerrado_at.strftime("%Y%m%d_%H%M") if resumen.cerrado_at else "sin_fecha"

    html = renderizar(
        "cierre_caja.html",
        evento=settings.nombre_evento,
        caja_id=resumen.id,
        cerrado_por=resumen.cerrado_por or "-",
        total_boletos=resumen.total_boletos,
        total_recaudado=resumen.total_recaudado,
    )

    mailer.enviar(
        destinatarios,
        f"Reporte de cierre de caja #{resumen.id}",
        (
            f"Caja #{resumen.id} cerrada por {resumen.cerrado_por or '-'}. "
            f"Boletos: {resumen.total_boletos}. Recaudado: ${resumen.total_recaudado:.2f}."
        ),
        [Adjunto(f"cierre_caja_{resumen.id}_{fecha}.pdf", pdf, "application/pdf")],
        html
    )

    logger.info(f"📄 Reporte de cierre de la caja {resumen.id} enviado a {len(destinatarios)} destinatario(s)")
    return True
