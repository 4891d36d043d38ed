"""
Ingresos unificados del local.

Las ventas de Vitrina, los abonos de Cake Bar y los abonos de pedidos
personalizados se registran en tablas distintas. Este módulo los convierte a
un mismo formato de entrada para la caja y el historial de ventas:

    {"id", "number", "type", "total", "payment_type", "created_at",
     "customer_name", "user_id", "items"?}
"""
from sqlalchemy.orm import Session, selectinload
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.modules.cake_bar.models import CakeBarOrder, CakeBarPayment
from app.modules.custom_orders.models import CustomOrderPayment
from app.modules.sales.models import Sale, SaleItem, SaleStatus

VITRINA = "VITRINA"
CAKE_BAR = "CAKE_BAR"
CUSTOM_ORDER = "CUSTOM_ORDER"
SALE_TYPES = (VITRINA, CAKE_BAR, CUSTOM_ORDER)


def _line(name: str, quantity: int, unit_price: Any, subtotal: Any) -> Dict[str, Any]:
    return {
        "name": name,
        "quantity": quantity,
        "unit_price": Decimal(unit_price),
        "subtotal": Decimal(subtotal)
    }


def _window(query, column, start: Optional[datetime], end: Optional[datetime]):
    """Filtra [start, end); cualquiera de los extremos puede omitirse"""
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column < end)
    return query


def sale_entry(sale: Sale, with_items: bool = False) -> Dict[str, Any]:
    entry = {
        "id": str(sale.id),
        "number": sale.sale_number,
        "type": sale.sale_type,
        "total": Decimal(sale.total),
        "payment_type": sale.payment_type.value,
        "created_at": sale.created_at,
        "customer_name": None,
        "user_id": sale.user_id
    }
    if with_items:
        entry["items"] = [
            _line(item.product_name, item.quantity, item.unit_price, item.subtotal)
            for item in sale.items
        ]
    return entry


def cake_bar_entry(payment: CakeBarPayment, with_items: bool = False) -> Dict[str, Any]:
    order = payment.order
    entry = {
        "id": f"cakebar_{payment.id}",
        "number": order.order_number if order else None,
        "type": CAKE_BAR,
        "total": Decimal(payment.amount),
        "payment_type": payment.payment_type.value,
        "created_at": payment.created_at,
        "customer_name": order.customer_name if order else None,
        "user_id": payment.paid_by
    }
    if with_items:
        # El abono cubre el pastel completo: base + personalizaciones
        items = []
        if order:
            base_name = order.product.name if order.product else "Pastel base"
            items.append(_line(f"{base_name} ({order.size} personas)", 1, order.base_price, order.base_price))
            items += [
                _line(c.option_name, c.quantity, c.unit_price, c.total_price)
                for c in order.customizations
            ]
        entry["items"] = items
    return entry


def custom_order_entry(payment: CustomOrderPayment, with_items: bool = False) -> Dict[str, Any]:
    order = payment.custom_order
    entry = {
        "id": f"custom_{payment.id}",
        "number": order.order_number if order else None,
        "type": CUSTOM_ORDER,
        "total": Decimal(payment.amount),
        "payment_type": payment.payment_method.value,
        "created_at": payment.created_at,
        "customer_name": order.customer_name if order else None,
        "user_id": payment.user_id
    }
    if with_items:
        name = f"Pedido personalizado - {order.customer_name}" if order else "Pedido personalizado"
        entry["items"] = [_line(f"{name} ({payment.payment_type.value})", 1, payment.amount, payment.amount)]
    return entry


def vitrina_entries(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    with_items: bool = False
) -> List[Dict[str, Any]]:
    """Ventas completadas de Vitrina en la ventana"""
    query = db.query(Sale).filter(Sale.status == SaleStatus.COMPLETED)
    if with_items:
        query = query.options(selectinload(Sale.items).selectinload(SaleItem.product))
    query = _window(query, Sale.created_at, start, end)
    return [sale_entry(sale, with_items) for sale in query.all()]


def payment_entries(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    with_items: bool = False
) -> List[Dict[str, Any]]:
    """Abonos de Cake Bar y de pedidos personalizados en la ventana"""
    cake_bar_query = db.query(CakeBarPayment).options(
        selectinload(CakeBarPayment.order).selectinload(CakeBarOrder.customizations),
        selectinload(CakeBarPayment.order).selectinload(CakeBarOrder.product)
    ) if with_items else db.query(CakeBarPayment).options(selectinload(CakeBarPayment.order))
    cake_bar_query = _window(cake_bar_query, CakeBarPayment.created_at, start, end)

    custom_query = db.query(CustomOrderPayment).options(selectinload(CustomOrderPayment.custom_order))
    custom_query = _window(custom_query, CustomOrderPayment.created_at, start, end)

    entries = [cake_bar_entry(p, with_items) for p in cake_bar_query.all()]
    entries += [custom_order_entry(p, with_items) for p in custom_query.all()]
    return entries


def sort_entries(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Más recientes primero"""
    return sorted(entries, key=lambda entry: entry["created_at"], reverse=True)
