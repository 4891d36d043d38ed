"""
Utilidades de ventas.
"""
import json
from typing import Any

from app.modules.sales.models import PaymentType


def normalize_payment_type(raw: Any) -> PaymentType:
    """
    Normaliza el medio de pago recibido del cliente.

    Acepta el nombre como texto ("CASH"), un objeto con `type`
    ({"type": "CARD", ...}) o ese mismo objeto serializado como JSON.
    Cualquier valor no reconocido se toma como efectivo.
    """
    if isinstance(raw, PaymentType):
        return raw

    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("{"):
            try:
                raw = json.loads(text)
            except ValueError:
                return PaymentType.CASH
        else:
            try:
                return PaymentType(text.upper())
            except ValueError:
                return PaymentType.CASH

    if isinstance(raw, dict):
        value = raw.get("type")
        if isinstance(value, str):
            return normalize_payment_type(value)

    return PaymentType.CASH
