"""
EVENTOS QR - Envío de correos
app/services/mailer.py

Transporte SMTP (STARTTLS) y plantillas HTML con Jinja2.
Cualquier fallo de envío se eleva como ExternalServiceError.
"""

from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional
import logging
import smtplib

from jinja2 import Environment, PackageLoader, select_autoescape

from app.config import settings
from app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

plantillas = Environment(
    loader=PackageLoader("app", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass
class Adjunto:
    nombre: str
    contenido: bytes
    tipo_mime: str = "application/octet-stream"


def renderizar(plantilla: str, **contexto) -> str:
    """Renderiza app/templates/correos/<plantilla>"""
    return plantillas.get_template(f"correos/{plantilla}").render(**contexto)


def invitados_texto(total_permitidos: int) -> str:
    adicionales = max(total_permitidos - 1, 0)
    if adicionales == 0:
        return "sin invitados adicionales"
    if adicionales == 1:
        return "con 1 invitado adicional"
    return f"con {adicionales} invitados adicionales"


class Mailer:
    """Cliente SMTP mínimo"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        usuario: Optional[str] = None,
        password: Optional[str] = None,
        remitente: Optional[str] = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.usuario = usuario or settings.smtp_user
        self.password = password or settings.smtp_password
        self.remitente = remitente or settings.smtp_from or settings.smtp_user

    def enviar(
        self,
        destinatarios,
        asunto: str,
        texto: str,
        adjuntos: List[Adjunto] = None,
        html: Optional[str] = None,
    ) -> None:
        if isinstance(destinatarios, str):
            destinatarios = [destinatarios]

        if not self.host:
            raise ExternalServiceError("SMTP no configurado")

        mensaje = EmailMessage()
        mensaje["From"] = self.remitente
        mensaje["To"] = ", ".join(destinatarios)
        mensaje["Subject"] = asunto
        mensaje.set_content(texto)
        if html:
            mensaje.add_alternative(html, subtype="html")

        for adjunto in adjuntos or []:
            maintype, _, subtype = adjunto.tipo_mime.partition("/")
            mensaje.add_attachment(
                adjunto.contenido,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=adjunto.nombre
            )

        logger.info(f"📧 Enviando correo a {mensaje['To']} con asunto \"{asunto}\"")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=settings.smtp_timeout) as smtp:
                smtp.starttls()
                if self.usuario and self.password:
                    smtp.login(self.usuario, self.password)
                smtp.send_message(mensaje)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Error enviando correo a {mensaje['To']}: {e}")
            raise ExternalServiceError(f"No se pudo enviar el correo: {e}") from e

        logger.info(f"📧 Correo enviado a {mensaje['To']}")


def get_mailer() -> Mailer:
    """Dependencia de FastAPI (se reemplaza en pruebas)"""
    return Mailer()
