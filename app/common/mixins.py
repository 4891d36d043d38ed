"""
Common mixins for models
"""
from sqlalchemy import Column, DateTime
from datetime import datetime


class TimestampMixin:
    """Mixin for models that need timestamp tracking (hora local del local)"""

    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
