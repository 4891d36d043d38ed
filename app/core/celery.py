"""
Celery configuration for background tasks
"""
from celery import Celery
from celery.schedules import crontab
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

redis_url = settings.redis_url

# Create Celery instance
celery_app = Celery(
    "pasteleria",
    broker=redis_url,
    backend=redis_url,
    include=[
        "app.modules.products.tasks",
        "app.modules.employees.tasks"
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="America/Bogota",
    enable_utc=False,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result backend settings
    result_expires=3600,  # 1 hour

    # Task routes for different queues
    task_routes={
        "app.modules.products.tasks.*": {"queue": "products"},
        "app.modules.employees.tasks.*": {"queue": "employees"},
    },

    # Beat schedule for periodic tasks
    beat_schedule={
        "check-low-stock": {
            "task": "app.modules.products.tasks.check_low_stock",
            "schedule": 3600.0,  # Run every hour
        },
        "close-stale-work-sessions": {
            "task": "app.modules.employees.tasks.close_stale_sessions",
            "schedule": crontab(hour=3, minute=0),  # Daily, before opening
        }
    }
)

if __name__ == "__main__":
    celery_app.start()
