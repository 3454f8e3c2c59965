"""
Exportación a Excel del historial de ventas en puerta
"""

from io import BytesIO

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models import VentaAdicional

COLUMNAS = ["Caja", "Código", "Cantidad", "Precio unitario", "Total", "Correo", "Enviado por correo", "Fecha"]


def exportar_ventas_excel(db: Session) -> BytesIO:
    """Todas las ventas, más recientes primero, en una hoja 'Ventas'"""
    ventas = db.execute(
        select(VentaAdicional)
        .options(selectinload(VentaAdicional.codigo))
        .order_by(VentaAdicional.created_at.desc())
    ).scalars().all()

    data = []
    for venta in ventas:
        data.append({
            "Caja": venta.caja_id,
            "Código": venta.codigo.codigo if venta.codigo else "",
            "Cantidad": venta.cantidad,
            "Precio unitario": float(venta.precio),
            "Total": float(venta.total),
            "Correo": venta.correo or "",
            "Enviado por correo": "Sí" if venta.enviado_por_correo else "No",
            "Fecha": venta.created_at.strftime("%d/%m/%Y %H:%M"),
        })

    df = pd.DataFrame(data, columns=COLUMNAS)

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Ventas")

    output.seek(0)
    return output
