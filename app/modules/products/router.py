from fastapi import APIRouter, status, Depends, Query, UploadFile, File, HTTPException
from uuid import UUID
from typing import List, Optional
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.products import service
from app.modules.products.models import ProductType
from app.modules.products.schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductList,
    StockMovementOut,
    InventoryDashboard,
    InventoryImportResult
)

product_router = APIRouter(prefix="/products", tags=["Products"])

MAX_IMPORT_SIZE = 5 * 1024 * 1024


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """Crear producto (admin/manager)."""
    return service.create_product(db, data, current_user.id)


@product_router.get("/", response_model=ProductList)
def list_products(
    type: Optional[ProductType] = Query(None, description="VITRINA, CAKE_BAR o SERVICE"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Buscar por nombre, descripción o código de barras"),
    active: Optional[bool] = Query(None),
    low_stock: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return service.get_products(
        db,
        product_type=type,
        category=category,
        search=search,
        is_active=active,
        low_stock=low_stock
    )


@product_router.get("/inventory/dashboard", response_model=InventoryDashboard)
def inventory_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """Resumen del inventario: totales, stock bajo y valor."""
    return service.get_inventory_dashboard(db)


@product_router.get("/inventory/export", response_model=None)
def export_inventory(
    type: Optional[ProductType] = Query(None, description="Exportar solo un tipo de producto"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """Descargar el catálogo como CSV (mismo formato que la importación)."""
    return service.export_inventory(db, product_type=type)


@product_router.get("/inventory/import-template", response_model=None)
def inventory_import_template(
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return service.inventory_import_template()


@product_router.post("/inventory/import", response_model=InventoryImportResult)
async def import_inventory(
    file: UploadFile = File(..., description="CSV con los encabezados de la exportación"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """
    Crear o actualizar productos desde CSV.

    Las filas con ID o código de barras existente se actualizan; el resto se crean.
    Los errores se reportan por fila sin detener la importación.
    """
    if file.filename and not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El archivo debe ser CSV (.csv)"
        )

    content = await file.read()
    if len(content) > MAX_IMPORT_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El archivo es muy grande (máximo 5MB)"
        )

    return service.import_inventory(db, content, current_user.id)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    return service.get_product_by_id(db, product_id)


@product_router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return service.update_product(db, product_id, data, current_user.id)


@product_router.delete("/{product_id}")
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    """Desactivar producto."""
    return service.delete_product(db, product_id)


@product_router.get("/{product_id}/movements", response_model=List[StockMovementOut])
def list_stock_movements(
    product_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    return service.get_stock_movements(db, product_id)
