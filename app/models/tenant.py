from enum import Enum
from sqlalchemy import Column, String, JSON, DateTime, Index, Enum as SAEnum
from sqlalchemy.orm import validates

from app.core.exceptions import InvalidStatusTransition
from .base import BaseModel


class TenantStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


# Allowed status changes; inactive is terminal
STATUS_TRANSITIONS = {
    TenantStatus.ACTIVE: {TenantStatus.SUSPENDED, TenantStatus.INACTIVE},
    TenantStatus.SUSPENDED: {TenantStatus.ACTIVE, TenantStatus.INACTIVE},
    TenantStatus.INACTIVE: set(),
}


class Tenant(BaseModel):
    __tablename__ = "tenants"

    name = Column(String(255), nullable=False)
    subdomain = Column(String(63), unique=True, nullable=False, index=True)
    database_name = Column(String(63), unique=True, nullable=False)

    # Status
    status = Column(
        SAEnum(
            TenantStatus,
            name="tenant_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=TenantStatus.ACTIVE,
        nullable=False,
    )

    # Billing
    plan = Column(String(50), nullable=True)

    # Configuration
    settings = Column(JSON, default=dict)

    # Set once the database exists and the schema has been applied
    provisioned_at = Column(DateTime(timezone=True), nullable=True)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_tenants_subdomain_status", "subdomain", "status"),
    )

    @validates("database_name")
    def validate_database_name(self, key, value):
        current = self.__dict__.get("database_name")
        if current is not None and current != value:
            raise ValueError("database_name is immutable once assigned")
        return value

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    @property
    def is_provisioned(self) -> bool:
        return self.provisioned_at is not None

    def can_transition_to(self, status: TenantStatus) -> bool:
        status = TenantStatus(status)
        return status == self.status or status in STATUS_TRANSITIONS[TenantStatus(self.status)]

    def transition_to(self, status: TenantStatus):
        """Apply a status change, enforcing the lifecycle rules"""
        status = TenantStatus(status)
        if not self.can_transition_to(status):
            raise InvalidStatusTransition(
                f"Cannot change tenant status from {TenantStatus(self.status).value} to {status.value}",
                {"subdomain": self.subdomain, "from": TenantStatus(self.status).value, "to": status.value},
            )
        self.status = status

    def __repr__(self):
        return f"<Tenant(name='{self.name}', subdomain='{self.subdomain}')>"
