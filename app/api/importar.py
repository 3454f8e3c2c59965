"""
EVENTOS QR - API de Importación masiva
app/api/importar.py

La respuesta es un stream NDJSON: un evento JSON por línea
(start, progress, cooldown, email-failed, done, error).
"""

from typing import Dict, Iterator, Optional
import json
import re

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse

from app.core.errors import ValidationError
from app.core.security import ROL_ADMIN, Usuario, requiere_rol
from app.services.importacion_service import EXTENSIONES, importar_personas
from app.services.mailer import Mailer, get_mailer

router = APIRouter()


def _ndjson(eventos: Iterator[Dict]) -> Iterator[str]:
    try:
        for evento in eventos:
            yield json.dumps(evento, ensure_ascii=False, default=str) + "\n"
    finally:
        # cierra el productor si el cliente se desconecta
        eventos.close()


def _max_usos_form(valor: Optional[str]) -> int:
    """Toma el entero inicial del campo; vacío, 0 o no numérico equivale a 1"""
    coincidencia = re.match(r"\s*([+-]?\d+)", valor or "")
    max_usos = int(coincidencia.group(1)) if coincidencia else 0
    if max_usos == 0:
        return 1
    if max_usos < 1:
        raise ValidationError("max_usos_familiares debe ser al menos 1")
    return max_usos


@router.post("/importar")
async def importar(
    file: UploadFile = File(...),
    max_usos_familiares: Optional[str] = Form(None),
    usuario_form: Optional[str] = Form(None, alias="usuario"),
    mailer: Mailer = Depends(get_mailer),
    usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))
):
    """Importa personas desde Excel o CSV y emite sus códigos QR"""
    if not file.filename or not file.filename.lower().endswith(EXTENSIONES):
        raise ValidationError("Formato no soportado. Use Excel (.xlsx) o CSV")

    max_usos = _max_usos_form(max_usos_familiares)

    contenido = await file.read()

    eventos = importar_personas(
        file.filename,
        contenido,
        max_usos,
        mailer,
        usuario=usuario_form or usuario.email,
    )

    return StreamingResponse(_ndjson(eventos), media_type="application/x-ndjson")
