"""
EVENTOS QR - Servicio de Caja
app/services/caja_service.py

Ciclo de vida de la caja (abierta -> cerrada), ventas de boletos
adicionales y totales derivados.

Política: un operador solo puede tener una caja abierta a la vez.
Las transiciones de estado son UPDATE condicionados (WHERE abierto) con
revisión de filas afectadas; la apertura la protege el índice único
parcial de caja_turno.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.core.errors import (
    AlreadyOpenError,
    LimitExceededError,
    NotFoundError,
    SessionNotOpenError,
    SessionStillOpenError,
    UnauthorizedError,
    ValidationError,
)
from app.models import CajaTurno, CodigoQR, Ingreso, VentaAdicional
from app.services.codigo_qr_service import correo_valido, emitir_codigo
from app.services.configuracion_service import ConfiguracionService
from app.services.mailer import Adjunto, Mailer, renderizar
from app.services.pdf_generator import generar_boleto_pdf
from app.services.qr_generator import generar_qr_png
from app.services.reporte_cierre import enviar_reporte_cierre
from app.utils.codigo_generator import prefijo_para
from app.utils.fechas import ahora

logger = logging.getLogger(__name__)

CENTAVOS = Decimal("0.01")


# ============================================================================
# RESULTADOS
# ============================================================================

@dataclass
class ResumenCierre:
    id: int
    abierto: bool
    abierto_por: Optional[str]
    abierto_at: Optional[object]
    cerrado_por: Optional[str]
    cerrado_at: Optional[object]
    total_boletos: int
    total_recaudado: Decimal
    reporte_enviado: Optional[bool] = None

    def to_dict(self) -> Dict:
        data = {
            "id": self.id,
            "abierto": self.abierto,
            "abiertoPor": self.abierto_por,
            "cerradoPor": self.cerrado_por,
            "abiertoAt": self.abierto_at.isoformat() if self.abierto_at else None,
            "cerradoAt": self.cerrado_at.isoformat() if self.cerrado_at else None,
            "totalTickets": self.total_boletos,
            "totalRecaudado": float(self.total_recaudado),
        }
        if self.reporte_enviado is not None:
            data["reportSent"] = self.reporte_enviado
        return data


@dataclass
class ResultadoVenta:
    venta: VentaAdicional
    codigo: CodigoQR
    precio_unitario: Decimal
    total: Decimal
    enviado: bool = False
    pdf: Optional[bytes] = field(default=None, repr=False)


def calcular_totales(ventas: List[VentaAdicional]) -> Tuple[int, Decimal]:
    """(Σ cantidad, Σ precio × cantidad)"""
    boletos = sum(v.cantidad for v in ventas)
    recaudado = sum((Decimal(v.precio) * v.cantidad for v in ventas), Decimal("0"))
    return boletos, recaudado.quantize(CENTAVOS)


class CajaService:
    """Operaciones sobre caja_turno y venta_adicional"""

    def __init__(self, db: Session, mailer: Optional[Mailer] = None):
        self.db = db
        self.mailer = mailer

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def obtener(self, caja_id: int) -> CajaTurno:
        caja = self.db.execute(
            select(CajaTurno)
            .options(selectinload(CajaTurno.ventas).selectinload(VentaAdicional.codigo))
            .where(CajaTurno.id == caja_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if caja is None:
            raise NotFoundError("Caja no encontrada")
        return caja

    def caja_abierta_de(self, operador: str) -> Optional[CajaTurno]:
        return self.db.execute(
            select(CajaTurno).where(CajaTurno.abierto.is_(True), CajaTurno.abierto_por == operador)
        ).scalar_one_or_none()

    def resumen(self, caja: CajaTurno) -> ResumenCierre:
        boletos, recaudado = calcular_totales(caja.ventas)
        return ResumenCierre(
            id=caja.id,
            abierto=caja.abierto,
            abierto_por=caja.abierto_por,
            abierto_at=caja.abierto_at,
            cerrado_por=caja.cerrado_por,
            cerrado_at=caja.cerrado_at,
            total_boletos=boletos,
            total_recaudado=recaudado,
        )

    def listar_abiertas(self) -> List[ResumenCierre]:
        cajas = self.db.execute(
            select(CajaTurno)
            .options(selectinload(CajaTurno.ventas))
            .where(CajaTurno.abierto.is_(True))
            .order_by(CajaTurno.abierto_at.desc())
        ).scalars().all()
        return [self.resumen(c) for c in cajas]

    def listar_cierres(self, limit: int = 20) -> List[ResumenCierre]:
        cajas = self.db.execute(
            select(CajaTurno)
            .options(selectinload(CajaTurno.ventas))
            .where(CajaTurno.abierto.is_(False))
            .order_by(CajaTurno.cerrado_at.desc(), CajaTurno.id.desc())
            .limit(limit)
        ).scalars().all()
        return [self.resumen(c) for c in cajas]

    def detalle(self, caja_id: int) -> Dict:
        caja = self.obtener(caja_id)
        return {
            "summary": self.resumen(caja).to_dict(),
            "ventas": [v.to_dict() for v in caja.ventas],
        }

    def historial(self, limit: int = 25) -> List[VentaAdicional]:
        return self.db.execute(
            select(VentaAdicional)
            .options(selectinload(VentaAdicional.codigo))
            .order_by(VentaAdicional.created_at.desc(), VentaAdicional.id.desc())
            .limit(limit)
        ).scalars().all()

    # ------------------------------------------------------------------
    # Límite global
    # ------------------------------------------------------------------

    def boletos_vendidos(self) -> int:
        return self.db.execute(select(func.coalesce(func.sum(VentaAdicional.cantidad), 0))).scalar_one()

    def stock_restante(self) -> Optional[int]:
        """None cuando no hay límite configurado"""
        limite = ConfiguracionService(self.db).limite_boletos()
        if limite <= 0:
            return None
        return max(limite - self.boletos_vendidos(), 0)

    def verificar_limite(self, cantidad: int) -> None:
        limite = ConfiguracionService(self.db).limite_boletos()
        if limite <= 0:
            return

        vendidos = self.boletos_vendidos()
        if vendidos + cantidad > limite:
            disponibles = max(limite - vendidos, 0)
            raise LimitExceededError(
                f"Se supera el límite global de {limite} boletos (quedan {disponibles})"
            )

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def abrir(self, operador: str) -> CajaTurno:
        """
        Abre una caja para el operador.

        Raises:
            AlreadyOpenError: el operador ya tiene una caja abierta
        """
        if self.caja_abierta_de(operador) is not None:
            raise AlreadyOpenError("Ya existe una caja abierta")

        caja = CajaTurno(abierto=True, abierto_por=operador, abierto_at=ahora())
        self.db.add(caja)
        try:
            self.db.commit()
        except IntegrityError:
            # otra petición del mismo operador abrió primero
            self.db.rollback()
            raise AlreadyOpenError("Ya existe una caja abierta")

        logger.info(f"🟢 Caja {caja.id} abierta por {operador}")
        return caja

    def registrar_venta(
        self,
        caja_id: int,
        codigo: CodigoQR,
        precio: Decimal,
        cantidad: int,
        correo: Optional[str] = None,
        commit: bool = True
    ) -> VentaAdicional:
        """
        Registra una venta en una caja abierta.

        Raises:
            NotFoundError: la caja no existe
            SessionNotOpenError: la caja está cerrada
        """
        caja = self.db.execute(
            select(CajaTurno).where(CajaTurno.id == caja_id).with_for_update()
        ).scalar_one_or_none()

        if caja is None:
            raise NotFoundError("Caja no encontrada")
        if not caja.abierto:
            raise SessionNotOpenError("La caja no está abierta")

        if cantidad is None or int(cantidad) <= 0:
            raise ValidationError("La cantidad debe ser mayor a cero")

        venta = VentaAdicional(
            codigo=codigo,
            caja_id=caja.id,
            precio=Decimal(precio).quantize(CENTAVOS),
            cantidad=int(cantidad),
            correo=correo or None,
            enviado_por_correo=False,
            created_at=ahora(),
        )
        self.db.add(venta)
        self.db.flush()

        if commit:
            self.db.commit()
        return venta

    def cerrar(self, caja_id: int, operador: str) -> ResumenCierre:
        """
        Cierra la caja del operador y envía el reporte de cierre.

        Raises:
            NotFoundError, UnauthorizedError (no es quien la abrió),
            SessionNotOpenError (ya estaba cerrada)
        """
        caja = self.obtener(caja_id)
        if caja.abierto_por != operador:
            raise UnauthorizedError("Solo quien abrió la caja puede cerrarla")
        return self._cerrar(caja, operador)

    def forzar_cierre(self, caja_id: int, operador: str) -> ResumenCierre:
        """Cierre administrativo de cualquier caja abierta"""
        caja = self.obtener(caja_id)
        logger.warning(f"⚠️ Cierre forzado de la caja {caja_id} ({caja.abierto_por}) por {operador}")
        return self._cerrar(caja, operador)

    def _cerrar(self, caja: CajaTurno, operador: str) -> ResumenCierre:
        resultado = self.db.execute(
            update(CajaTurno)
            .where(CajaTurno.id == caja.id, CajaTurno.abierto.is_(True))
            .values(abierto=False, cerrado_at=ahora(), cerrado_por=operador)
            .execution_options(synchronize_session=False)
        )

        if resultado.rowcount != 1:
            self.db.rollback()
            raise SessionNotOpenError("La caja ya está cerrada")

        self.db.commit()

        caja = self.obtener(caja.id)
        self.db.refresh(caja)
        resumen = self.resumen(caja)
        resumen.reporte_enviado = self._entregar_reporte(resumen, caja.ventas)

        logger.info(
            f"🔴 Caja {caja.id} cerrada por {operador}: "
            f"{resumen.total_boletos} boletos, ${resumen.total_recaudado}"
        )
        return resumen

    def _entregar_reporte(self, resumen: ResumenCierre, ventas: List[VentaAdicional]) -> bool:
        """El reporte es best-effort: un fallo no deshace el cierre"""
        if self.mailer is None:
            logger.warning(f"⚠️ Caja {resumen.id}: sin servicio de correo, no se envía reporte")
            return False

        try:
            return enviar_reporte_cierre(self.mailer, resumen, ventas)
        except Exception as e:
            logger.error(f"❌ No se pudo enviar el reporte de cierre de la caja {resumen.id}: {e}")
            return False

    def eliminar_cierre(self, caja_id: int) -> Dict[str, int]:
        """
        Elimina una caja cerrada junto con sus ventas, los códigos vendidos
        y los ingresos de esos códigos.

        Raises:
            NotFoundError, SessionStillOpenError
        """
        caja = self.obtener(caja_id)
        if caja.abierto:
            raise SessionStillOpenError("No se puede eliminar una caja abierta")

        codigo_ids = [v.codigo_id for v in caja.ventas]

        try:
            ingresos = 0
            codigos = 0
            if codigo_ids:
                ingresos = self.db.execute(
                    delete(Ingreso).where(Ingreso.codigoqr_id.in_(codigo_ids))
                ).rowcount
            ventas = self.db.execute(
                delete(VentaAdicional).where(VentaAdicional.caja_id == caja_id)
            ).rowcount
            if codigo_ids:
                codigos = self.db.execute(
                    delete(CodigoQR).where(CodigoQR.id_codigo.in_(codigo_ids))
                ).rowcount
            self.db.execute(delete(CajaTurno).where(CajaTurno.id == caja_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.expunge_all()
        logger.warning(f"🗑️ Cierre {caja_id} eliminado: {ventas} ventas, {codigos} códigos, {ingresos} ingresos")

        return {"ventas": ventas, "codigos": codigos, "ingresos": ingresos}

    # ------------------------------------------------------------------
    # Venta en puerta
    # ------------------------------------------------------------------

    def generar_venta(
        self,
        operador: str,
        cantidad,
        correo: Optional[str] = None,
        enviar_correo: bool = False
    ) -> ResultadoVenta:
        """
        Emite un QR para `cantidad` personas y lo registra como venta en la
        caja abierta del operador. Se envía por correo o se devuelve un PDF.
        """
        try:
            cantidad = int(cantidad)
        except (TypeError, ValueError):
            cantidad = 0
        if cantidad <= 0:
            raise ValidationError("Debes indicar la cantidad de QR a generar")

        caja = self.caja_abierta_de(operador)
        if caja is None:
            raise SessionNotOpenError("Debes abrir la caja antes de generar QR")

        correo = correo.strip() if isinstance(correo, str) else ""
        if correo and not correo_valido(correo):
            raise ValidationError("Correo inválido")

        enviar = bool(enviar_correo and correo)
        if enviar and self.mailer is None:
            raise ValidationError("Servicio de correo no disponible")

        precio = ConfiguracionService(self.db).precio_unitario()
        self.verificar_limite(cantidad)

        try:
            codigo = emitir_codigo(
                self.db, "vis", cantidad,
                prefijo=prefijo_para("vis", adicional=True),
                referencia=caja.id
            )
            venta = self.registrar_venta(caja.id, codigo, precio, cantidad, correo or None, commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        total = (precio * cantidad).quantize(CENTAVOS)
        asset = generar_qr_png(codigo.codigo, settings.nombre_evento)

        if enviar:
            html = renderizar(
                "venta_adicional.html",
                evento=settings.nombre_evento,
                cantidad=cantidad,
                precio_unitario=precio,
                total=total,
            )
            self.mailer.enviar(
                correo,
                "🎟️ Tu código QR adicional",
                f"Adjuntamos el código QR válido para {cantidad} persona(s). Total: ${total:.2f}.",
                [Adjunto(asset.nombre_archivo, asset.contenido, "image/png")],
                html
            )
            venta.enviado_por_correo = True
            self.db.commit()
            return ResultadoVenta(venta=venta, codigo=codigo, precio_unitario=precio, total=total, enviado=True)

        pdf = generar_boleto_pdf(codigo.codigo, asset.contenido, cantidad, precio, total)
        return ResultadoVenta(venta=venta, codigo=codigo, precio_unitario=precio, total=total, pdf=pdf)
