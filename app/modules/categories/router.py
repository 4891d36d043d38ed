from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.categories import service
from app.modules.categories.schemas import (
    CategoryCreate, CategoryUpdate, CategoryOut, CategoryList
)
from app.modules.products.models import ProductType

categories_router = APIRouter(prefix="/categories", tags=["Categories"])

@categories_router.post("/", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    category_service = service.CategoryService(db)
    return category_service.create_category(data)

@categories_router.get("/", response_model=CategoryList)
def list_categories(
    type: Optional[ProductType] = Query(None, description="Filtrar por tipo de producto"),
    active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    category_service = service.CategoryService(db)
    return category_service.get_all_categories(product_type=type, is_active=active)

@categories_router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    category_service = service.CategoryService(db)
    return category_service.get_category_by_id(category_id)

@categories_router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: UUID,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    category_service = service.CategoryService(db)
    return category_service.update_category(category_id, data)

@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin_or_manager())
):
    category_service = service.CategoryService(db)
    category_service.delete_category(category_id)
