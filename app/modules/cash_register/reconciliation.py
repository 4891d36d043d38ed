"""
Arqueo de caja.

efectivo_esperado = apertura + ventas_en_efectivo - gastos
diferencia = efectivo_contado - efectivo_esperado

La diferencia es informativa: nunca impide el cierre.
"""
from decimal import Decimal
from typing import Any, Dict, Iterable, Tuple

from app.modules.sales.models import PaymentType
from app.modules.sales.utils import normalize_payment_type

ZERO = Decimal("0")


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def summarize_payments(entries: Iterable[Tuple[Any, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Totales por medio de pago.

    Args:
        entries: Pares (medio_de_pago, monto). El medio se normaliza.

    Returns:
        {"CASH": {"total": Decimal, "count": int}, ...} solo con los medios presentes
    """
    summary: Dict[str, Dict[str, Any]] = {}
    for payment_type, amount in entries:
        key = normalize_payment_type(payment_type).value
        bucket = summary.setdefault(key, {"total": ZERO, "count": 0})
        bucket["total"] += _as_decimal(amount)
        bucket["count"] += 1
    return summary


def cash_total(summary: Dict[str, Dict[str, Any]]) -> Decimal:
    return summary.get(PaymentType.CASH.value, {}).get("total", ZERO)


def expected_cash(opening_cash: Any, cash_sales: Any, expenses: Any) -> Decimal:
    return _as_decimal(opening_cash) + _as_decimal(cash_sales) - _as_decimal(expenses)


def cash_difference(actual_cash: Any, expected: Any) -> Decimal:
    """Positivo = sobrante, negativo = faltante"""
    return _as_decimal(actual_cash) - _as_decimal(expected)
