"""
Servicio de ventas de Vitrina (mostrador).
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime
from decimal import Decimal
from typing import Dict, List
from uuid import UUID
import logging

from app.modules.auth.models import User
from app.modules.cash_register.models import CashRegister, CashRegisterStatus
from app.modules.products.models import Product, StockMovementType
from app.modules.products.service import record_stock_movement
from app.modules.sales.models import Sale, SaleItem, SaleStatus, PaymentType
from app.modules.sales.schemas import SaleCreate
from app.modules.sales.utils import normalize_payment_type

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class SaleService:
    """Ventas de mostrador con descuento de inventario"""

    def __init__(self, db: Session):
        self.db = db

    def _next_sale_number(self, sale_type: str) -> str:
        count = self.db.query(func.count(Sale.id)).scalar() or 0
        return f"{sale_type}-{datetime.now().year}-{count + 1:06d}"

    def create_sale(self, data: SaleCreate, user: User) -> Sale:
        """Crear venta: valida stock, descuenta inventario y liga la venta a la caja abierta"""
        if not data.items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Items de venta son requeridos"
            )

        try:
            payment_type = normalize_payment_type(data.payment_method)
            sale_type = data.sale_type.upper()

            # Un mismo producto puede venir en varias líneas: el stock se valida por el total
            requested: Dict[UUID, int] = {}
            for item in data.items:
                requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

            products: Dict[UUID, Product] = {}
            for product_id, quantity in requested.items():
                product = self.db.query(Product).filter(
                    Product.id == product_id,
                    Product.is_active.is_(True)
                ).first()
                if not product:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Producto no encontrado: {product_id}"
                    )
                if not product.is_service and product.stock < quantity:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Stock insuficiente para {product.name}. Disponible: {product.stock}"
                    )
                products[product_id] = product

            lines = []
            for item in data.items:
                product = products[item.product_id]
                unit_price = item.unit_price if item.unit_price is not None else product.effective_price()
                lines.append((product, item.quantity, Decimal(unit_price)))

            subtotal = sum((price * qty for _, qty, price in lines), Decimal("0"))
            discount_amount = (subtotal * data.discount / Decimal("100")).quantize(CENTS)
            total = subtotal - discount_amount

            # Sin monto recibido se asume pago exacto
            change = Decimal("0")
            amount_received = total
            if payment_type == PaymentType.CASH and data.amount_received is not None:
                if data.amount_received < total:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="El monto recibido es insuficiente"
                    )
                amount_received = data.amount_received
                change = data.amount_received - total

            open_register = self.db.query(CashRegister).filter(
                CashRegister.status == CashRegisterStatus.OPEN
            ).first()

            sale = Sale(
                sale_number=self._next_sale_number(sale_type),
                subtotal=subtotal,
                discount=data.discount,
                discount_amount=discount_amount,
                total=total,
                payment_type=payment_type,
                sale_type=sale_type,
                status=SaleStatus.COMPLETED,
                amount_received=amount_received,
                change=change,
                user_id=user.id,
                cash_register_id=open_register.id if open_register else None
            )
            self.db.add(sale)
            self.db.flush()

            for product, quantity, unit_price in lines:
                self.db.add(SaleItem(
                    sale_id=sale.id,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=unit_price,
                    subtotal=unit_price * quantity
                ))

                # Descontar stock (los servicios no manejan inventario)
                if not product.is_service:
                    previous = product.stock
                    product.stock = previous - quantity
                    record_stock_movement(
                        self.db, product, StockMovementType.SALE, previous, product.stock,
                        f"Venta {sale.sale_number}", user.id
                    )

            self.db.commit()
            self.db.refresh(sale)
            logger.info(
                f"Venta {sale.sale_number}: total={sale.total} pago={payment_type.value} "
                f"caja={'sí' if open_register else 'no'}"
            )
            return sale

        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Error de integridad en base de datos"
            )
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error interno del servidor: {str(e)}"
            )

    def get_recent_sales(self, limit: int = 50) -> List[Sale]:
        """Últimas ventas completadas"""
        return self.db.query(Sale) \
            .options(selectinload(Sale.items).selectinload(SaleItem.product)) \
            .filter(Sale.status == SaleStatus.COMPLETED) \
            .order_by(Sale.created_at.desc()) \
            .limit(limit) \
            .all()
