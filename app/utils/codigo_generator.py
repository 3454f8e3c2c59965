"""
Generador de códigos únicos para los QR de acceso
"""

import random
import time
from typing import Optional

# Sin caracteres confusos (i, l, o, 0, 1)
LETRAS_SEGURAS = 'ABCDEFGHJKMNPQRSTUVWXYZ'
NUMEROS_SEGUROS = '23456789'

PREFIJOS = {
    "est": "EST",
    "fam": "FAM",
    "vis": "VIS",
}


def _sufijo_aleatorio(k: int = 3) -> str:
    return ''.join(random.choices(LETRAS_SEGURAS + NUMEROS_SEGUROS, k=k))


def generar_codigo_qr(prefijo: str, referencia: Optional[int] = None) -> str:
    """
    Genera un código de acceso.

    Formato: PREFIJO[-REFERENCIA]-MARCA-SUFIJO

    La referencia es el id del dueño (persona) o de la caja; la marca son
    los últimos 6 dígitos del timestamp en milisegundos y el sufijo evita
    choques dentro del mismo milisegundo.

    Ejemplos:
        EST-15-482913-K7M
        VIS-ADD-3-482913-Q2P
    """
    marca = str(int(time.time() * 1000))[-6:]
    partes = [prefijo]
    if referencia is not None:
        partes.append(str(referencia))
    partes.extend([marca, _sufijo_aleatorio()])
    return "-".join(partes)


def prefijo_para(tipo_qr: str, adicional: bool = False) -> str:
    """EST / FAM / VIS, con -ADD para códigos adicionales"""
    prefijo = PREFIJOS[tipo_qr]
    return f"{prefijo}-ADD" if adicional else prefijo
