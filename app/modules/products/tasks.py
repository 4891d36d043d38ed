"""
Background tasks for products module
"""
from app.core.celery import celery_app
from app.database.database import SessionLocal
import logging

logger = logging.getLogger(__name__)


@celery_app.task
def check_low_stock():
    """
    Periodic task that logs products at or below their minimum stock
    """
    from app.modules.products.service import get_low_stock_products

    db = SessionLocal()
    try:
        logger.info("Starting low stock check")
        products = get_low_stock_products(db)

        for product in products:
            logger.warning(
                f"Stock bajo: {product.name} (stock={product.stock}, mínimo={product.min_stock})"
            )

        logger.info(f"Low stock check completed: {len(products)} product(s)")
        return {"status": "completed", "low_stock": [str(p.id) for p in products]}

    except Exception as e:
        logger.error(f"Low stock check failed: {str(e)}")
        raise
    finally:
        db.close()
