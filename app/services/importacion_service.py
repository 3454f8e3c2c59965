"""
EVENTOS QR - Importación masiva
app/services/importacion_service.py

Carga de personas desde Excel (.xlsx) o CSV y emisión de sus códigos QR.

El proceso es un generador que produce eventos (dict) a medida que avanza:
    start, progress, cooldown, email-failed, done, error
El transporte (NDJSON en el endpoint) es asunto del consumidor. Si el
consumidor deja de iterar, el bloque finally registra en la bitácora
los conteos acumulados hasta ese momento.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional
import csv
import io
import logging
import time
import zipfile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import EventosError, ExternalServiceError, ValidationError
from app.database import SessionLocal
from app.models import Importacion, Persona
from app.services.codigo_qr_service import correo_valido, emitir_codigo, normalizar_cedula
from app.services.mailer import Adjunto, Mailer, renderizar
from app.services.qr_generator import generar_qr_png
from app.utils.file_utils import nombre_archivo_importacion

logger = logging.getLogger(__name__)

EXTENSIONES = (".xlsx", ".csv")

MOTIVO_CORREO_INVALIDO = "invalid email format"

TIPOS = {
    "est": "estudiante",
    "estudiante": "estudiante",
    "fam": "familiar",
    "familiar": "familiar",
    "vis": "visitante",
    "visitante": "visitante",
}


class FilaError(Exception):
    """Fallo de una fila; no detiene la importación"""

    def __init__(self, motivo: str, correo: Optional[str] = None):
        super().__init__(motivo)
        self.motivo = motivo
        self.correo = correo


# ============================================================================
# LECTURA DEL ARCHIVO
# ============================================================================

def leer_filas(nombre_archivo: str, contenido: bytes) -> List[Dict]:
    """
    Devuelve las filas como diccionarios {encabezado: valor}.
    La primera fila del archivo son los encabezados.

    Raises:
        ValidationError: formato no soportado o archivo ilegible
    """
    nombre = (nombre_archivo or "").lower()
    if not nombre.endswith(EXTENSIONES):
        raise ValidationError("Formato no soportado. Use Excel (.xlsx) o CSV")

    try:
        if nombre.endswith(".csv"):
            decoded = contenido.decode("utf-8-sig")
            reader = csv.DictReader(io.StringIO(decoded))
            return [dict(fila) for fila in reader if any((v or "").strip() for v in fila.values())]

        wb = openpyxl.load_workbook(io.BytesIO(contenido), read_only=True, data_only=True)
        ws = wb.worksheets[0]
        filas_hoja = ws.iter_rows(values_only=True)
        encabezados = [str(c).strip() if c is not None else "" for c in next(filas_hoja, ())]

        filas = []
        for row in filas_hoja:
            if any(v not in (None, "") for v in row):
                filas.append(dict(zip(encabezados, row)))
        wb.close()
        return filas

    except (UnicodeDecodeError, csv.Error, zipfile.BadZipFile, InvalidFileException, KeyError, OSError) as e:
        logger.error(f"❌ No se pudo leer {nombre_archivo}: {e}")
        raise ValidationError(f"No se pudo leer el archivo: {e}")


def _texto(valor) -> str:
    if valor is None:
        return ""
    if isinstance(valor, float) and valor.is_integer():
        valor = int(valor)
    return str(valor).strip()


def _columna(fila: Dict, *claves) -> str:
    for clave in claves:
        valor = _texto(fila.get(clave))
        if valor:
            return valor
    return ""


def normalizar_tipo(valor: str) -> str:
    """est|estudiante|fam|familiar|vis|visitante; por defecto estudiante"""
    return TIPOS.get((valor or "est").strip().lower(), "estudiante")


# ============================================================================
# PROCESAMIENTO
# ============================================================================

@dataclass
class EstadoImportacion:
    total: int = 0
    procesados: int = 0
    exitosos: int = 0
    fallidos: int = 0
    enviados: int = 0
    errores: List[Dict] = field(default_factory=list)
    correos_fallidos: List[Dict] = field(default_factory=list)

    def progreso(self, fila: int) -> Dict:
        return {
            "type": "progress",
            "fila": fila,
            "procesados": self.procesados,
            "total": self.total,
            "exitosos": self.exitosos,
            "fallidos": self.fallidos,
        }


@dataclass
class Envio:
    """Correo pendiente de una fila ya guardada"""
    correo: str
    asunto: str
    texto: str
    adjuntos: List[Adjunto]
    html: str


def _registrar_fila(db: Session, fila: Dict, max_usos_familiares: int) -> Optional[Envio]:
    """
    Crea la persona y sus códigos en una transacción propia.

    Returns:
        El correo a enviar, o None si la fila no lleva correo
    """
    nombre = _columna(fila, "Nombre", "nombre", "NOMBRE")
    apellido = _columna(fila, "Apellido", "apellido", "APELLIDO")
    cedula = normalizar_cedula(_columna(fila, "Cédula", "Cedula", "cédula", "cedula", "CEDULA"))
    correo = _columna(fila, "Correo", "correo", "CORREO", "Email", "email")
    tipo_persona = normalizar_tipo(_columna(fila, "Tipo", "tipo", "TIPO"))

    if not nombre:
        raise FilaError("Nombre requerido")

    if correo and not correo_valido(correo):
        raise FilaError(MOTIVO_CORREO_INVALIDO, correo=correo)

    if cedula and db.execute(select(Persona.id_persona).where(Persona.cedula == cedula)).first():
        raise FilaError(f"Cédula {cedula} ya registrada")

    persona = Persona(
        nombre=nombre,
        apellido=apellido or None,
        cedula=cedula,
        correo=correo or None,
        tipo_persona=tipo_persona
    )
    db.add(persona)
    db.flush()

    envio = None
    nombre_completo = persona.nombre_completo

    if tipo_persona == "estudiante":
        codigo_est = emitir_codigo(db, "est", 1, persona=persona)
        codigo_fam = emitir_codigo(db, "fam", max_usos_familiares, persona=persona)
        db.commit()

        if correo:
            png_est = generar_qr_png(codigo_est.codigo, nombre_completo)
            png_fam = generar_qr_png(codigo_fam.codigo, "FAMILIAR")
            envio = Envio(
                correo=correo,
                asunto="🎟️ Tus códigos QR para el evento",
                texto=f"Hola {nombre}, adjuntamos tus códigos QR.",
                adjuntos=[
                    Adjunto(png_est.nombre_archivo, png_est.contenido, "image/png"),
                    Adjunto(png_fam.nombre_archivo, png_fam.contenido, "image/png"),
                ],
                html=renderizar(
                    "codigos_estudiante.html",
                    evento=settings.nombre_evento,
                    nombre=nombre_completo,
                    codigo_estudiante=codigo_est.codigo,
                    codigo_familiar=codigo_fam.codigo,
                    max_usos_familiares=max_usos_familiares,
                ),
            )

    elif tipo_persona == "visitante":
        codigo_vis = emitir_codigo(db, "vis", 1, persona=persona)
        db.commit()

        if correo:
            png_vis = generar_qr_png(codigo_vis.codigo, "VISITANTE")
            envio = Envio(
                correo=correo,
                asunto="🎟️ Código QR Visitante",
                texto=f"Hola {nombre}, adjuntamos tu código QR de visitante.",
                adjuntos=[Adjunto(png_vis.nombre_archivo, png_vis.contenido, "image/png")],
                html=renderizar(
                    "codigo_visitante.html",
                    evento=settings.nombre_evento,
                    nombre=nombre_completo,
                    codigo=codigo_vis.codigo,
                ),
            )

    else:
        # los familiares solo se registran; usan el código FAM del estudiante
        db.commit()

    return envio


def importar_personas(
    nombre_archivo: str,
    contenido: bytes,
    max_usos_familiares: int,
    mailer: Mailer,
    usuario: Optional[str] = None,
    sesion_factory: Callable[[], Session] = SessionLocal,
    pausa: Callable[[float], None] = time.sleep,
) -> Iterator[Dict]:
    """
    Importa las filas del archivo produciendo eventos de progreso.

    Args:
        nombre_archivo: Nombre original (define el formato)
        contenido: Bytes del archivo
        max_usos_familiares: Usos del código familiar de cada estudiante
        mailer: Servicio de correo
        usuario: Quien ejecuta la importación (bitácora)
        sesion_factory: Fábrica de sesiones; la importación usa la suya propia
        pausa: Función de espera entre lotes de correos
    """
    estado = EstadoImportacion()
    db = sesion_factory()

    extension = ".csv" if (nombre_archivo or "").lower().endswith(".csv") else ".xlsx"
    bitacora = Importacion(archivo=nombre_archivo_importacion(extension), usuario=usuario)
    db.add(bitacora)
    db.commit()

    logger.info(f"📥 Importación {bitacora.id} iniciada: {nombre_archivo} ({usuario or 'anónimo'})")

    try:
        try:
            filas = leer_filas(nombre_archivo, contenido)
        except ValidationError as e:
            estado.errores.append({"fila": None, "motivo": e.mensaje})
            yield {"type": "error", "mensaje": e.mensaje}
            return

        estado.total = len(filas)
        yield {"type": "start", "total": estado.total, "importId": bitacora.id}

        for indice, fila in enumerate(filas):
            numero_fila = indice + 2
            envio = None

            try:
                envio = _registrar_fila(db, fila, max_usos_familiares)
                estado.exitosos += 1
            except FilaError as e:
                db.rollback()
                estado.fallidos += 1
                estado.errores.append({"fila": numero_fila, "motivo": e.motivo})
                if e.correo:
                    fallo = {"fila": numero_fila, "correo": e.correo, "motivo": e.motivo}
                    estado.correos_fallidos.append(fallo)
                    yield {"type": "email-failed", **fallo}
            except EventosError as e:
                db.rollback()
                estado.fallidos += 1
                estado.errores.append({"fila": numero_fila, "motivo": e.mensaje})
            except Exception as e:
                db.rollback()
                logger.exception(f"❌ Fila {numero_fila}: error inesperado")
                estado.fallidos += 1
                estado.errores.append({"fila": numero_fila, "motivo": "Error procesando fila", "detalle": str(e)})

            if envio is not None:
                try:
                    mailer.enviar(envio.correo, envio.asunto, envio.texto, envio.adjuntos, envio.html)
                    estado.enviados += 1
                except ExternalServiceError as e:
                    fallo = {"fila": numero_fila, "correo": envio.correo, "motivo": e.mensaje}
                    estado.correos_fallidos.append(fallo)
                    yield {"type": "email-failed", **fallo}

            estado.procesados += 1
            yield estado.progreso(numero_fila)

            quedan_filas = estado.procesados < estado.total
            if (
                envio is not None
                and quedan_filas
                and estado.enviados
                and estado.enviados % settings.lote_correos == 0
            ):
                segundos = settings.pausa_correos_segundos
                logger.info(f"⏸️ Importación {bitacora.id}: {estado.enviados} correos enviados, pausa de {segundos}s")
                yield {"type": "cooldown", "segundos": segundos, "enviados": estado.enviados}
                pausa(segundos)

        yield {
            "type": "done",
            "importId": bitacora.id,
            "total": estado.total,
            "exitosos": estado.exitosos,
            "fallidos": estado.fallidos,
            "errores": estado.errores,
            "correosFallidos": estado.correos_fallidos,
        }

    finally:
        # también se ejecuta si el cliente se desconecta (GeneratorExit)
        try:
            db.rollback()
            bitacora.total_registros = estado.total
            bitacora.exitosos = estado.exitosos
            bitacora.fallidos = estado.fallidos
            bitacora.errores = estado.errores or None
            db.commit()
            logger.info(
                f"📥 Importación {bitacora.id} finalizada: "
                f"{estado.exitosos} exitosos, {estado.fallidos} fallidos de {estado.total}"
            )
        finally:
            db.close()
