"""
EVENTOS QR - Servicio de Códigos QR
app/services/codigo_qr_service.py

- Emisión de códigos (importación, generación puntual, ventas)
- Ajuste del límite de usos
- Consulta por cédula y reenvío por correo
"""

from typing import Dict, Optional
import logging
import re

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.errors import InvalidCapError, NotFoundError, ValidationError
from app.models import CodigoQR, Ingreso, Persona
from app.services.mailer import Adjunto, Mailer, invitados_texto, renderizar
from app.services.qr_generator import generar_qr_png
from app.config import settings
from app.utils.codigo_generator import generar_codigo_qr, prefijo_para

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", re.IGNORECASE)


# ============================================================================
# UTILIDADES
# ============================================================================

def normalizar_cedula(valor) -> Optional[str]:
    """Deja solo los dígitos; None si no queda nada"""
    if valor is None:
        return None
    digitos = re.sub(r"\D+", "", str(valor)).strip()
    return digitos or None


def correo_valido(correo: Optional[str]) -> bool:
    return bool(correo) and bool(EMAIL_REGEX.match(correo))


def validar_max_usos(max_usos) -> int:
    """Entero positivo; los decimales se truncan"""
    if isinstance(max_usos, bool):
        raise InvalidCapError("El número de entradas debe ser un entero positivo")

    try:
        valor = int(float(max_usos))
    except (TypeError, ValueError, OverflowError):
        raise InvalidCapError("El número de entradas debe ser un entero positivo")

    if valor <= 0:
        raise InvalidCapError("El número de entradas debe ser un entero positivo")
    return valor


# ============================================================================
# EMISIÓN
# ============================================================================

def emitir_codigo(
    db: Session,
    tipo_qr: str,
    max_usos: int,
    persona: Optional[Persona] = None,
    prefijo: Optional[str] = None,
    referencia: Optional[int] = None,
    commit: bool = False
) -> CodigoQR:
    """
    Crea un código con usos_actual = 0.

    El prefijo por defecto sale del tipo (EST/FAM/VIS); la referencia por
    defecto es el id de la persona dueña.
    """
    max_usos = validar_max_usos(max_usos)
    prefijo = prefijo or prefijo_para(tipo_qr)
    if referencia is None and persona is not None:
        referencia = persona.id_persona

    codigo = generar_codigo_qr(prefijo, referencia)
    while db.execute(select(CodigoQR.id_codigo).where(CodigoQR.codigo == codigo)).first():
        codigo = generar_codigo_qr(prefijo, referencia)

    registro = CodigoQR(
        codigo=codigo,
        tipo_qr=tipo_qr,
        max_usos=max_usos,
        usos_actual=0,
        persona=persona
    )
    db.add(registro)
    db.flush()

    if commit:
        db.commit()

    logger.info(f"🔖 Código emitido: {codigo} ({tipo_qr}, {max_usos} usos)")
    return registro


def actualizar_max_usos(db: Session, codigo_id: int, nuevo_max_usos) -> CodigoQR:
    """
    Cambia el límite de usos de un código.

    Raises:
        InvalidCapError: no positivo o menor que los usos ya registrados
        NotFoundError: el código no existe
    """
    nuevo = validar_max_usos(nuevo_max_usos)

    codigo = db.get(CodigoQR, codigo_id)
    if codigo is None:
        raise NotFoundError("QR no encontrado")

    if nuevo < codigo.usos_actual:
        raise InvalidCapError("El nuevo límite no puede ser inferior a los usos ya registrados")

    # condicionado: un ingreso concurrente no puede dejar usos_actual > max_usos
    resultado = db.execute(
        update(CodigoQR)
        .where(CodigoQR.id_codigo == codigo_id, CodigoQR.usos_actual <= nuevo)
        .values(max_usos=nuevo)
        .execution_options(synchronize_session=False)
    )
    if resultado.rowcount != 1:
        db.rollback()
        raise InvalidCapError("El nuevo límite no puede ser inferior a los usos ya registrados")

    db.commit()
    db.refresh(codigo)

    logger.info(f"✏️ Límite de {codigo.codigo} actualizado a {nuevo}")
    return codigo


# ============================================================================
# CONSULTAS
# ============================================================================

def buscar_estudiante(db: Session, cedula) -> Persona:
    cedula = normalizar_cedula(cedula)
    persona = None
    if cedula:
        persona = db.execute(select(Persona).where(Persona.cedula == cedula)).scalar_one_or_none()

    if persona is None or persona.tipo_persona != "estudiante":
        raise NotFoundError("Estudiante no encontrado")
    return persona


def resumen_codigo(db: Session, codigo: CodigoQR) -> Dict:
    """Datos de un código con su conteo de ingresos y última lectura"""
    total, ultima = db.execute(
        select(func.count(Ingreso.id_ingreso), func.max(Ingreso.fecha))
        .where(Ingreso.codigoqr_id == codigo.id_codigo)
    ).one()

    return {
        "id": codigo.id_codigo,
        "codigo": codigo.codigo,
        "tipo": codigo.tipo_qr,
        "maxUsos": codigo.max_usos,
        "usosActual": codigo.usos_actual,
        "disponibles": codigo.disponibles,
        "totalIngresos": total or 0,
        "ultimaLectura": ultima.isoformat() if ultima else None,
    }


def consultar_por_cedula(db: Session, cedula) -> Dict:
    """Persona y sus códigos (más recientes primero)"""
    cedula_normalizada = normalizar_cedula(cedula)
    if not cedula_normalizada:
        raise ValidationError("Debes ingresar una cédula válida")

    persona = db.execute(
        select(Persona).where(Persona.cedula == cedula_normalizada)
    ).scalar_one_or_none()

    if persona is None:
        raise NotFoundError("Persona no encontrada")

    codigos = db.execute(
        select(CodigoQR)
        .where(CodigoQR.persona_id == persona.id_persona)
        .order_by(CodigoQR.id_codigo.desc())
    ).scalars().all()

    datos = persona.to_dict()
    datos["codigos"] = [resumen_codigo(db, c) for c in codigos]
    return datos


# ============================================================================
# GENERACIÓN PUNTUAL Y REENVÍO
# ============================================================================

def generar_qr_estudiante(db: Session, mailer: Mailer, cedula, max_usos) -> Dict:
    """QR adicional para un estudiante; se envía a su correo si lo tiene"""
    max_usos = validar_max_usos(max_usos)
    persona = buscar_estudiante(db, cedula)

    codigo = emitir_codigo(db, "est", max_usos, persona=persona, prefijo=prefijo_para("est", adicional=True))
    db.commit()

    asset = generar_qr_png(codigo.codigo, persona.nombre_completo)
    enviado = False

    if persona.correo:
        mailer.enviar(
            persona.correo,
            "🎓 QR adicional estudiante",
            f"Hola {persona.nombre}, aquí está tu QR adicional con {max_usos} usos.",
            [Adjunto(asset.nombre_archivo, asset.contenido, "image/png")]
        )
        enviado = True

    return {
        "success": True,
        "mensaje": "QR generado y enviado al correo" if enviado else "QR generado",
        "codigo": codigo.codigo,
    }


def generar_qr_visitante(db: Session, max_usos) -> Dict:
    """QR adicional sin dueño; se devuelve la imagen como data URL"""
    codigo = emitir_codigo(db, "vis", max_usos, prefijo=prefijo_para("vis", adicional=True))
    db.commit()

    asset = generar_qr_png(codigo.codigo, "VISITANTE")

    return {
        "success": True,
        "mensaje": "QR visitante generado",
        "codigo": codigo.codigo,
        "imagen": asset.data_url,
    }


def reenviar_qr(db: Session, mailer: Mailer, codigo_id: int, correo: Optional[str] = None) -> None:
    """
    Reenvía el QR por correo. Si se indica un correo distinto al de la
    persona dueña, se actualiza su registro.
    """
    codigo = db.get(CodigoQR, codigo_id)
    if codigo is None:
        raise NotFoundError("QR no encontrado")

    destinatario = (correo or "").strip()
    objetivo = destinatario or (codigo.persona.correo if codigo.persona else "") or ""

    if not correo_valido(objetivo):
        raise ValidationError("Debe proporcionar un correo válido para reenviar el QR")

    if codigo.persona and codigo.persona.correo != objetivo:
        codigo.persona.correo = objetivo
        db.commit()

    nombre = codigo.persona.nombre_completo if codigo.persona else ""
    nombre = nombre or "Invitado"
    total_permitidos = codigo.max_usos

    asset = generar_qr_png(codigo.codigo, nombre)
    texto = (
        f"Hola {nombre}, adjuntamos tu código QR único. Este QR permite el ingreso para "
        f"{total_permitidos} persona(s) ({invitados_texto(total_permitidos)}). Presenta el QR en el acceso."
    )
    html = renderizar(
        "reenvio_qr.html",
        evento=settings.nombre_evento,
        nombre=nombre,
        total_permitidos=total_permitidos,
        invitados=invitados_texto(total_permitidos),
    )

    mailer.enviar(
        objetivo,
        "🎓 Tu código QR para la graduación",
        texto,
        [Adjunto(asset.nombre_archivo, asset.contenido, "image/png")],
        html
    )
