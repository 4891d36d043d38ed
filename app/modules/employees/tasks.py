"""
Background tasks for employees module
"""
from app.core.celery import celery_app
from app.database.database import SessionLocal
import logging

logger = logging.getLogger(__name__)


@celery_app.task
def close_stale_sessions():
    """
    Daily task closing work sessions left open on previous days
    """
    from app.modules.employees.service import TimeClockService

    db = SessionLocal()
    try:
        closed = TimeClockService(db).close_stale_sessions()
        for session in closed:
            logger.warning(
                f"Sesión {session.id} del {session.day_date} cerrada automáticamente "
                f"({session.hours_worked} h)"
            )
        logger.info(f"Stale session cleanup completed: {len(closed)} session(s)")
        return {"status": "completed", "closed": len(closed)}

    except Exception as e:
        logger.error(f"Stale session cleanup failed: {str(e)}")
        raise
    finally:
        db.close()
