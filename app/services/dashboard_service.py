"""
EVENTOS QR - Servicio de Dashboard
app/services/dashboard_service.py

Resumen de ingresos agrupados por código QR y conteo por categoría.

Regla de categorías por código:
- código vendido en puerta (tiene ventas)  -> todos sus ingresos son adicionales
- código de estudiante (est)                -> 1 estudiante, el resto familiares
- cualquier otro (fam, vis)                 -> todos sus ingresos son familiares
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models import CodigoQR, Ingreso
from app.utils.fechas import hoy, rango_dia

logger = logging.getLogger(__name__)


@dataclass
class GrupoIngresos:
    codigo: str
    tipo: str
    usos_actual: int
    max_usos: int
    total_ingresos: int
    ultima_lectura: datetime
    persona: Optional[str]
    es_adicional: bool

    def to_dict(self) -> Dict:
        return {
            "codigo": self.codigo,
            "tipo": self.tipo,
            "usosActual": self.usos_actual,
            "maxUsos": self.max_usos,
            "totalIngresos": self.total_ingresos,
            "ultimaLectura": self.ultima_lectura.isoformat(),
            "persona": self.persona,
            "esAdicional": self.es_adicional,
        }


@dataclass
class ResumenIngresos:
    total: int
    estudiantes: int
    familiares: int
    adicionales: int
    grupos: List[GrupoIngresos]


def resumir_ingresos(ingresos: Iterable[Ingreso]) -> ResumenIngresos:
    """Agrupa por código y cuenta por categoría"""
    grupos: Dict[int, GrupoIngresos] = {}

    for ingreso in ingresos:
        codigo = ingreso.codigoqr
        grupo = grupos.get(codigo.id_codigo)

        if grupo is None:
            persona = (codigo.persona.nombre_completo or None) if codigo.persona else None
            grupos[codigo.id_codigo] = GrupoIngresos(
                codigo=codigo.codigo,
                tipo=codigo.tipo_qr,
                usos_actual=codigo.usos_actual,
                max_usos=codigo.max_usos,
                total_ingresos=1,
                ultima_lectura=ingreso.fecha,
                persona=persona,
                es_adicional=len(codigo.ventas) > 0,
            )
        else:
            grupo.total_ingresos += 1
            if ingreso.fecha > grupo.ultima_lectura:
                grupo.ultima_lectura = ingreso.fecha

    ordenados = sorted(grupos.values(), key=lambda g: g.ultima_lectura, reverse=True)

    estudiantes = 0
    familiares = 0
    adicionales = 0

    for grupo in ordenados:
        if grupo.es_adicional:
            adicionales += grupo.total_ingresos
        elif grupo.tipo == "est":
            estudiantes += 1
            familiares += grupo.total_ingresos - 1
        else:
            familiares += grupo.total_ingresos

    return ResumenIngresos(
        total=estudiantes + familiares + adicionales,
        estudiantes=estudiantes,
        familiares=familiares,
        adicionales=adicionales,
        grupos=ordenados,
    )


def _ingresos(db: Session, fecha: Optional[date] = None) -> List[Ingreso]:
    consulta = (
        select(Ingreso)
        .options(
            selectinload(Ingreso.codigoqr).selectinload(CodigoQR.persona),
            selectinload(Ingreso.codigoqr).selectinload(CodigoQR.ventas),
        )
        .order_by(Ingreso.fecha.desc())
    )

    if fecha is not None:
        inicio, fin = rango_dia(fecha)
        consulta = consulta.where(Ingreso.fecha >= inicio, Ingreso.fecha <= fin)

    return db.execute(consulta).scalars().all()


def resumen_diario(db: Session, fecha: Optional[date] = None) -> Dict:
    """
    Resumen del día indicado (o de todo el historial si fecha es None),
    más el total de hoy.
    """
    resumen = resumir_ingresos(_ingresos(db, fecha))

    dia_actual = hoy()
    if fecha == dia_actual:
        total_hoy = resumen.total
    else:
        total_hoy = resumir_ingresos(_ingresos(db, dia_actual)).total

    logger.debug(f"📊 Dashboard {fecha or 'histórico'}: {resumen.total} ingresos, hoy {total_hoy}")

    return {
        "total": resumen.total,
        "estudiantes": resumen.estudiantes,
        "familiares": resumen.familiares,
        "adicionales": resumen.adicionales,
        "ingresosAgrupados": [g.to_dict() for g in resumen.grupos],
        "selectedDate": fecha.isoformat() if fecha else None,
        "totalHoy": total_hoy,
    }
