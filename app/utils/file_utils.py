"""
Utilidades para manejo de archivos y directorios
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Tuple
import shutil
import uuid

from app.utils.fechas import ahora


@dataclass
class ReporteDirectorio:
    path: str
    exists: bool
    files: int = 0
    bytes: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if data["error"] is None:
            data.pop("error")
        return data


def recorrer_directorio(directorio: Path) -> Tuple[int, int]:
    """Cuenta archivos y bytes de forma recursiva (sin seguir enlaces)"""
    archivos = 0
    total_bytes = 0

    for entrada in directorio.iterdir():
        if entrada.is_dir() and not entrada.is_symlink():
            sub_archivos, sub_bytes = recorrer_directorio(entrada)
            archivos += sub_archivos
            total_bytes += sub_bytes
        else:
            archivos += 1
            total_bytes += entrada.lstat().st_size

    return archivos, total_bytes


def reporte_directorio(ruta: str) -> ReporteDirectorio:
    directorio = Path(ruta).resolve()
    try:
        if not directorio.is_dir():
            return ReporteDirectorio(path=str(directorio), exists=False)

        archivos, total_bytes = recorrer_directorio(directorio)
        return ReporteDirectorio(path=str(directorio), exists=True, files=archivos, bytes=total_bytes)
    except OSError as e:
        return ReporteDirectorio(path=str(directorio), exists=False, error=str(e))


def vaciar_directorio(ruta: str) -> Tuple[int, int]:
    """
    Elimina todo el contenido del directorio, conservando el directorio.

    Returns:
        tuple: (archivos_eliminados, bytes_eliminados)
    """
    directorio = Path(ruta).resolve()
    eliminados = 0
    bytes_eliminados = 0

    for entrada in directorio.iterdir():
        if entrada.is_dir() and not entrada.is_symlink():
            archivos, total_bytes = recorrer_directorio(entrada)
            shutil.rmtree(entrada)
            eliminados += archivos
            bytes_eliminados += total_bytes
        else:
            bytes_eliminados += entrada.lstat().st_size
            entrada.unlink()
            eliminados += 1

    return eliminados, bytes_eliminados


def nombre_archivo_importacion(extension: str = ".xlsx") -> str:
    """import_<timestamp>_<uuid8>.xlsx"""
    marca = ahora().strftime("%Y%m%d%H%M%S")
    return f"import_{marca}_{uuid.uuid4().hex[:8]}{extension}"
