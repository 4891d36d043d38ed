from sqlalchemy.orm import Session
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from pydantic import ValidationError
from uuid import UUID
from typing import Optional
from decimal import Decimal, InvalidOperation
from datetime import date
import random
import string
import logging

from app.common.csv_export import create_csv_response, parse_yes_no, read_csv_rows
from app.core.config import settings
from app.modules.products.models import Product, ProductType, StockMovement, StockMovementType
from app.modules.products.schemas import ProductCreate, ProductUpdate
from app.modules.categories.models import Category

logger = logging.getLogger(__name__)

# Palabras clave de categorías que pertenecen al Cake Bar
CAKE_BAR_KEYWORDS = (
    "CAKE_BAR",
    "DECORACIONES_TORTA",
    "CHOCOLATES_DECORACION",
    "FIGURAS_TORTA",
)


def determine_product_type(
    category: Optional[str],
    explicit_type: Optional[ProductType] = None,
    is_service: bool = False
) -> ProductType:
    """
    Determina el tipo de producto: tipo explícito, servicio, o según palabras
    clave de la categoría. Por defecto los productos van a Vitrina.
    """
    if explicit_type:
        return ProductType(explicit_type)
    if is_service:
        return ProductType.SERVICE

    normalized = (category or "").upper().replace(" ", "_")
    if any(keyword in normalized for keyword in CAKE_BAR_KEYWORDS):
        return ProductType.CAKE_BAR
    return ProductType.VITRINA


def generate_barcode() -> str:
    """Código de barras interno: prefijo 789 + 10 dígitos"""
    return "789" + "".join(random.choices(string.digits, k=10))


def record_stock_movement(
    db: Session,
    product: Product,
    movement_type: StockMovementType,
    previous_stock: int,
    new_stock: int,
    reason: Optional[str],
    user_id: Optional[UUID]
) -> StockMovement:
    """Agrega un movimiento de stock a la sesión (sin commit)"""
    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity=new_stock - previous_stock,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        user_id=user_id
    )
    db.add(movement)
    return movement


def _barcode_taken(db: Session, barcode: str, exclude_id: Optional[UUID] = None) -> bool:
    query = db.query(Product).filter(Product.barcode == barcode)
    if exclude_id:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def _resolve_category(db: Session, category_id: Optional[UUID]) -> Optional[Category]:
    if category_id is None:
        return None
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La categoría especificada no existe"
        )
    return category


def create_product(db: Session, data: ProductCreate, user_id: UUID) -> Product:
    """Crea un producto con su movimiento de stock inicial"""
    category = _resolve_category(db, data.category_id)
    category_name = data.category or (category.name if category else None)

    explicit_type = data.type
    if explicit_type is None and category is not None and not data.is_service:
        explicit_type = category.product_type
    product_type = determine_product_type(category_name, explicit_type, data.is_service)

    barcode = data.barcode
    if not barcode and not data.is_service:
        barcode = generate_barcode()
        while _barcode_taken(db, barcode):
            barcode = generate_barcode()
    elif barcode and _barcode_taken(db, barcode):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El código de barras ya existe"
        )

    # Los servicios no manejan inventario
    stock = 0 if data.is_service else data.stock
    min_stock = 0 if data.is_service else (
        data.min_stock if data.min_stock is not None else settings.DEFAULT_MIN_STOCK
    )

    product = Product(
        name=data.name,
        description=data.description,
        price=data.price,
        stock=stock,
        min_stock=min_stock,
        category=category_name or "Sin Categoría",
        category_id=data.category_id,
        type=product_type,
        barcode=barcode,
        is_service=data.is_service,
        is_active=True,
        special_price=data.special_price,
        has_promotion=data.has_promotion,
        promotion_discount=data.promotion_discount,
        promotion_start_date=data.promotion_start_date,
        promotion_end_date=data.promotion_end_date,
        created_by=user_id
    )

    try:
        db.add(product)
        db.flush()

        if not data.is_service:
            record_stock_movement(
                db, product, StockMovementType.ADJUSTMENT, 0, stock, "Stock inicial", user_id
            )

        db.commit()
        db.refresh(product)
        logger.info(f"Producto creado: {product.name} ({product.type.value}) stock={product.stock}")
        return product
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El código de barras ya existe"
        )
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error interno del servidor: {str(e)}"
        )


def get_products(
    db: Session,
    product_type: Optional[ProductType] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    low_stock: bool = False
) -> dict:
    """Lista productos: activos primero y luego por nombre"""
    query = db.query(Product)

    if product_type:
        query = query.filter(Product.type == product_type)
    if category:
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Product.name).like(pattern),
            func.lower(Product.description).like(pattern),
            func.lower(Product.barcode).like(pattern)
        ))
    if is_active is not None:
        query = query.filter(Product.is_active == is_active)
    if low_stock:
        query = query.filter(Product.is_service.is_(False), Product.stock <= Product.min_stock)

    products = query.order_by(Product.is_active.desc(), Product.name.asc()).all()
    return {"products": products, "total": len(products)}


def get_product_by_id(db: Session, product_id: UUID) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Producto no encontrado")
    return product


def update_product(db: Session, product_id: UUID, data: ProductUpdate, user_id: UUID) -> Product:
    """Actualiza un producto; los cambios de stock quedan como ajuste"""
    product = get_product_by_id(db, product_id)
    update_dict = data.model_dump(exclude_unset=True)
    reason = update_dict.pop("reason", None)

    if update_dict.get("barcode") and _barcode_taken(db, update_dict["barcode"], exclude_id=product.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El código de barras ya existe"
        )

    if update_dict.get("category_id") is not None:
        category = _resolve_category(db, update_dict["category_id"])
        update_dict.setdefault("category", category.name)

    new_stock = update_dict.pop("stock", None)
    if new_stock is not None and product.is_service:
        new_stock = None

    try:
        for key, value in update_dict.items():
            setattr(product, key, value)

        if new_stock is not None and new_stock != product.stock:
            previous = product.stock
            product.stock = new_stock
            record_stock_movement(
                db, product, StockMovementType.ADJUSTMENT, previous, new_stock,
                reason or "Ajuste manual", user_id
            )

        db.commit()
        db.refresh(product)
        return product
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Error de integridad en base de datos"
        )
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error interno del servidor: {str(e)}"
        )


def delete_product(db: Session, product_id: UUID) -> dict:
    """Desactiva un producto (las ventas históricas lo siguen referenciando)"""
    product = get_product_by_id(db, product_id)
    product.is_active = False
    db.commit()
    return {"message": "Producto desactivado exitosamente"}


def get_stock_movements(db: Session, product_id: UUID) -> list:
    get_product_by_id(db, product_id)
    return db.query(StockMovement) \
        .filter(StockMovement.product_id == product_id) \
        .order_by(StockMovement.created_at.desc()) \
        .all()


def get_low_stock_products(db: Session) -> list:
    """Productos activos (no servicios) con stock en o bajo el mínimo"""
    return db.query(Product).filter(
        Product.is_active.is_(True),
        Product.is_service.is_(False),
        Product.stock <= Product.min_stock
    ).order_by(Product.stock.asc(), Product.name.asc()).all()


def get_inventory_dashboard(db: Session) -> dict:
    """Totales del inventario"""
    products = db.query(Product).all()
    active = [p for p in products if p.is_active]
    stocked = [p for p in active if not p.is_service]
    low_stock = get_low_stock_products(db)

    inventory_value = sum((Decimal(p.price) * p.stock for p in stocked), Decimal("0"))

    return {
        "total_products": len(products),
        "active_products": len(active),
        "low_stock_count": len(low_stock),
        "out_of_stock_count": len([p for p in stocked if p.stock <= 0]),
        "inventory_value": inventory_value,
        "low_stock_products": low_stock
    }


# ===== Exportación / importación de inventario (CSV) =====

INVENTORY_CSV_HEADERS = {
    "id": "ID",
    "name": "Nombre",
    "description": "Descripción",
    "price": "Precio",
    "stock": "Stock",
    "min_stock": "Stock Mínimo",
    "category": "Categoría",
    "type": "Tipo",
    "barcode": "Código de Barras",
    "is_service": "Es Servicio",
    "is_active": "Activo",
    "special_price": "Precio Especial",
    "has_promotion": "Tiene Promoción",
    "promotion_discount": "Descuento Promoción",
    "created_at": "Fecha Creación",
    "updated_at": "Fecha Actualización",
}

IMPORT_REASON = "Importación de inventario"

TEMPLATE_ROWS = [
    {
        "name": "Concha de vainilla",
        "description": "Pan dulce con cubierta de vainilla",
        "price": Decimal("25.00"),
        "stock": 30,
        "min_stock": 10,
        "category": "PAN_DULCE",
        "type": ProductType.VITRINA.value,
        "is_service": False,
        "is_active": True,
        "has_promotion": False,
    },
    {
        "name": "Decoración con fondant",
        "description": "Servicio de decoración para pasteles",
        "price": Decimal("150.00"),
        "stock": 0,
        "min_stock": 0,
        "category": "DECORACIONES_TORTA",
        "type": ProductType.CAKE_BAR.value,
        "is_service": True,
        "is_active": True,
        "has_promotion": True,
        "promotion_discount": Decimal("10"),
    },
]


def _inventory_row(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "stock": product.stock,
        "min_stock": product.min_stock,
        "category": product.category,
        "type": product.type.value,
        "barcode": product.barcode,
        "is_service": product.is_service,
        "is_active": product.is_active,
        "special_price": product.special_price,
        "has_promotion": product.has_promotion,
        "promotion_discount": product.promotion_discount,
        "created_at": product.created_at.date(),
        "updated_at": product.updated_at.date(),
    }


def export_inventory(db: Session, product_type: Optional[ProductType] = None):
    """Catálogo completo (o de un tipo) como CSV reimportable"""
    query = db.query(Product)
    if product_type:
        query = query.filter(Product.type == product_type)
    products = query.order_by(Product.name.asc()).all()

    label = product_type.value if product_type else "COMPLETO"
    filename = f"inventario_{label.lower()}_{date.today().isoformat()}.csv"
    return create_csv_response([_inventory_row(p) for p in products], filename, INVENTORY_CSV_HEADERS)


def inventory_import_template():
    headers = {k: v for k, v in INVENTORY_CSV_HEADERS.items() if k not in ("created_at", "updated_at")}
    return create_csv_response(TEMPLATE_ROWS, "plantilla_inventario.csv", headers)


def _decimal_field(raw: str, label: str, minimum: Decimal, exclusive: bool = False,
                   maximum: Optional[Decimal] = None) -> Optional[Decimal]:
    if not raw:
        return None
    try:
        value = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        value = None
    too_low = value is None or (value <= minimum if exclusive else value < minimum)
    if too_low or (maximum is not None and value > maximum):
        if maximum is not None:
            raise ValueError(f"{label} debe estar entre {minimum} y {maximum}")
        comparison = "mayor a" if exclusive else "mayor o igual a"
        raise ValueError(f"{label} debe ser un número {comparison} {minimum}")
    return value


def _int_field(raw: str, label: str) -> Optional[int]:
    if not raw:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        value = None
    if value is None or value < 0 or value != value.to_integral_value():
        raise ValueError(f"{label} debe ser un número entero mayor o igual a 0")
    return int(value)


def parse_inventory_row(row: dict) -> dict:
    """
    Convierte una fila del CSV en valores de producto.

    Raises:
        ValueError: con el mensaje para el usuario cuando la fila es inválida
    """
    name = row.get("Nombre", "")
    if not name:
        raise ValueError("Nombre es obligatorio")

    price = _decimal_field(row.get("Precio", ""), "Precio", Decimal("0"), exclusive=True)
    if price is None:
        raise ValueError("Precio es obligatorio")

    is_service = parse_yes_no(row.get("Es Servicio", ""))
    stock = _int_field(row.get("Stock", ""), "Stock")
    if stock is None and not is_service:
        raise ValueError("Stock es obligatorio")

    raw_type = row.get("Tipo", "").upper()
    if raw_type and raw_type not in {t.value for t in ProductType}:
        raise ValueError("Tipo debe ser VITRINA, CAKE_BAR o SERVICE")

    raw_id = row.get("ID", "")
    try:
        product_id = UUID(raw_id) if raw_id else None
    except ValueError:
        raise ValueError("ID no válido")

    return {
        "id": product_id,
        "name": name,
        "description": row.get("Descripción") or None,
        "price": price,
        "stock": stock,
        "min_stock": _int_field(row.get("Stock Mínimo", ""), "Stock Mínimo"),
        "category": row.get("Categoría") or None,
        "type": ProductType(raw_type) if raw_type else None,
        "barcode": row.get("Código de Barras") or None,
        "is_service": is_service,
        "is_active": parse_yes_no(row.get("Activo", ""), default=True),
        "special_price": _decimal_field(row.get("Precio Especial", ""), "Precio Especial", Decimal("0")),
        "has_promotion": parse_yes_no(row.get("Tiene Promoción", "")),
        "promotion_discount": _decimal_field(
            row.get("Descuento Promoción", ""), "Descuento Promoción", Decimal("0"), maximum=Decimal("100")
        ),
    }


def _import_target(db: Session, values: dict) -> Optional[Product]:
    """Producto a actualizar: por ID y, si no existe, por código de barras"""
    if values["id"]:
        product = db.query(Product).filter(Product.id == values["id"]).first()
        if product:
            return product
    if values["barcode"]:
        return db.query(Product).filter(Product.barcode == values["barcode"]).first()
    return None


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def import_inventory(db: Session, content: bytes, user_id: UUID) -> dict:
    """
    Crea o actualiza productos desde un CSV con los encabezados de la exportación.

    Cada fila se procesa por separado: una fila inválida se reporta en
    `errors` ("Fila N: ...") y no detiene el resto. Los cambios de stock
    quedan registrados como movimientos de ajuste.
    """
    try:
        rows = read_csv_rows(content)
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El archivo debe ser un CSV codificado en UTF-8"
        )
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El archivo está vacío"
        )

    results = {"created": 0, "updated": 0, "errors": []}

    # La fila 1 es el encabezado
    for line_number, row in enumerate(rows, start=2):
        try:
            values = parse_inventory_row(row)
            target = _import_target(db, values)

            if target:
                changes = {
                    key: values[key] for key in (
                        "name", "price", "stock", "min_stock", "category", "type", "barcode",
                        "is_active", "has_promotion"
                    ) if values[key] is not None
                }
                # Vacío en estas columnas significa quitar el valor
                for key in ("description", "special_price", "promotion_discount"):
                    changes[key] = values[key]
                update_product(db, target.id, ProductUpdate(**changes, reason=IMPORT_REASON), user_id)
                results["updated"] += 1
            else:
                product = create_product(db, ProductCreate(
                    name=values["name"],
                    description=values["description"],
                    price=values["price"],
                    stock=values["stock"] or 0,
                    min_stock=values["min_stock"],
                    category=values["category"],
                    type=values["type"],
                    barcode=values["barcode"],
                    is_service=values["is_service"],
                    special_price=values["special_price"],
                    has_promotion=values["has_promotion"],
                    promotion_discount=values["promotion_discount"]
                ), user_id)
                if not values["is_active"]:
                    product.is_active = False
                    db.commit()
                results["created"] += 1

        except ValidationError as e:
            results["errors"].append(f"Fila {line_number}: {_validation_message(e)}")
        except ValueError as e:
            results["errors"].append(f"Fila {line_number}: {e}")
        except HTTPException as e:
            results["errors"].append(f"Fila {line_number}: {e.detail}")

    logger.info(
        f"Importación de inventario: creados={results['created']} "
        f"actualizados={results['updated']} errores={len(results['errors'])}"
    )
    return {
        "message": (
            f"Importación completada. Creados: {results['created']}, "
            f"Actualizados: {results['updated']}, Errores: {len(results['errors'])}"
        ),
        "results": results
    }
