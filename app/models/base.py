from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.ext.declarative import declared_attr
import uuid
from datetime import datetime, timezone

from app.core.database import Base, TenantBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()


class BaseModel(TimestampMixin, Base):
    """Registry model, stored in the main database"""
    __abstract__ = True


class TenantScopedModel(TimestampMixin, TenantBase):
    """Model stored inside each tenant database"""
    __abstract__ = True
