from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from uuid import UUID
from typing import Dict, Any, Optional

from app.modules.categories.models import Category
from app.modules.categories.schemas import CategoryCreate, CategoryUpdate
from app.modules.products.models import Product, ProductType


class CategoryService:
    """Servicio para gestión de categorías"""

    def __init__(self, db: Session):
        self.db = db

    def create_category(self, data: CategoryCreate) -> Category:
        """
        Crear nueva categoría

        Args:
            data: Datos de la categoría

        Returns:
            Category: Categoría creada
        """
        try:
            existing = self.db.query(Category).filter(Category.name == data.name).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Ya existe una categoría con el nombre '{data.name}'"
                )

            category = Category(
                name=data.name,
                description=data.description,
                product_type=data.product_type
            )

            self.db.add(category)
            self.db.commit()
            self.db.refresh(category)
            return category

        except HTTPException:
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

    def get_all_categories(
        self,
        product_type: Optional[ProductType] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Listar categorías, filtradas por tipo y estado"""
        query = self.db.query(Category)
        if product_type:
            query = query.filter(Category.product_type == product_type)
        if is_active is not None:
            query = query.filter(Category.is_active == is_active)

        categories = query.order_by(Category.name).all()
        return {"categories": categories, "total": len(categories)}

    def get_category_by_id(self, category_id: UUID) -> Category:
        """Obtener categoría por ID"""
        category = self.db.query(Category).filter(Category.id == category_id).first()

        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Categoría no encontrada"
            )
        return category

    def update_category(self, category_id: UUID, data: CategoryUpdate) -> Category:
        """Actualizar categoría"""
        try:
            category = self.get_category_by_id(category_id)

            if data.name and data.name != category.name:
                existing = self.db.query(Category).filter(
                    Category.name == data.name,
                    Category.id != category_id
                ).first()

                if existing:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail=f"Ya existe otra categoría con el nombre '{data.name}'"
                    )

            update_dict = data.model_dump(exclude_unset=True)
            for field, value in update_dict.items():
                setattr(category, field, value)

            self.db.commit()
            self.db.refresh(category)
            return category

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error actualizando categoría: {str(e)}"
            )

    def delete_category(self, category_id: UUID) -> Dict[str, str]:
        """Eliminar categoría si ningún producto la referencia"""
        try:
            category = self.get_category_by_id(category_id)

            in_use = self.db.query(Product).filter(Product.category_id == category_id).count()
            if in_use:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"No se puede eliminar: {in_use} producto(s) usan esta categoría"
                )

            self.db.delete(category)
            self.db.commit()
            return {"message": "Categoría eliminada exitosamente"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error eliminando categoría: {str(e)}"
            )
