from .base import BaseModel, TenantScopedModel
from .tenant import Tenant, TenantStatus
from .user import User

__all__ = [
    "BaseModel",
    "TenantScopedModel",
    "Tenant",
    "TenantStatus",
    "User",
]
