"""
Utilidades CSV para exportaciones e importaciones

Las exportaciones usan encabezados en español; los booleanos se escriben como
SÍ / NO para que el mismo archivo pueda volver a importarse.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List

from fastapi import Response


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Dict[str, str]
) -> Response:
    """
    Respuesta CSV a partir de una lista de diccionarios.

    Args:
        data: Filas a exportar
        filename: Nombre del archivo descargado
        headers: Campo -> encabezado en el CSV (también define el orden de columnas)
    """
    output = io.StringIO()
    fieldnames = list(headers.keys())
    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    writer.writerow(headers)
    for row in data:
        writer.writerow({key: format_csv_value(row.get(key)) for key in fieldnames})

    csv_content = output.getvalue()
    output.close()

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    elif isinstance(value, bool):
        return "SÍ" if value else "NO"
    elif isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, (date, datetime)):
        return value.isoformat()
    else:
        return str(value)


def read_csv_rows(content: bytes) -> List[Dict[str, str]]:
    """Filas de un CSV subido (UTF-8, con o sin BOM) con encabezados limpios"""
    text = content.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for row in reader:
        rows.append({
            (key or "").strip(): (value or "").strip() if isinstance(value, str) else ""
            for key, value in row.items()
        })
    return rows


def parse_yes_no(value: str, default: bool = False) -> bool:
    """SÍ / SI / YES / TRUE / 1 -> True; NO / FALSE / 0 -> False; vacío -> default"""
    normalized = (value or "").strip().upper()
    if not normalized:
        return default
    return normalized in ("SÍ", "SI", "YES", "TRUE", "1", "S")
