"""
Reglas de anticipo para pedidos personalizados.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

DEFAULT_RATIO = Decimal("0.5")


def _as_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def minimum_advance(estimated_price: Any, ratio: Any = DEFAULT_RATIO) -> Decimal:
    """Anticipo mínimo requerido para un precio estimado"""
    minimum = _as_decimal(estimated_price) * _as_decimal(ratio)
    return minimum.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def validate_advance(estimated_price: Any, advance_amount: Any, ratio: Any = DEFAULT_RATIO) -> Optional[str]:
    """
    Retorna el mensaje de error si el anticipo no cumple, o None si es válido.
    """
    estimated = _as_decimal(estimated_price)
    advance = _as_decimal(advance_amount)
    ratio = _as_decimal(ratio)

    if advance < estimated * ratio:
        percent = (ratio * 100).normalize()
        return f"El anticipo debe ser mínimo el {percent:f}% del precio estimado"
    if advance > estimated:
        return "El anticipo no puede exceder el precio estimado"
    return None
