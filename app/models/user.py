from sqlalchemy import Column, String, Boolean

from .base import TenantScopedModel


class User(TenantScopedModel):
    """Staff account; lives in the tenant database"""
    __tablename__ = "users"

    email = Column(String(100), unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    timezone = Column(String(50), default="UTC")
    language = Column(String(10), default="en")
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<User(email='{self.email}', name='{self.full_name}')>"
