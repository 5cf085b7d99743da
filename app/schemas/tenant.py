from pydantic import BaseModel, validator
from typing import Any, Dict, List, Optional
from datetime import datetime
import uuid

from app.core.subdomain import validate_subdomain
from app.models.tenant import TenantStatus


class TenantCreate(BaseModel):
    name: str
    subdomain: str
    plan: Optional[str] = None
    status: TenantStatus = TenantStatus.ACTIVE
    settings: Dict[str, Any] = {}

    @validator("name")
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v

    @validator("subdomain")
    def check_subdomain(cls, v):
        if not validate_subdomain(v):
            raise ValueError(
                "Subdomain must be 3-63 lowercase letters, numbers or hyphens, "
                "not start or end with a hyphen, and not be reserved"
            )
        return v


class TenantResponse(BaseModel):
    id: uuid.UUID
    name: str
    subdomain: str
    database_name: str
    status: TenantStatus
    plan: Optional[str] = None
    settings: Dict[str, Any] = {}
    provisioned_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TenantDetailResponse(TenantResponse):
    database_exists: bool


class CurrentTenantResponse(BaseModel):
    id: uuid.UUID
    name: str
    subdomain: str
    plan: Optional[str] = None
    settings: Dict[str, Any] = {}

    class Config:
        from_attributes = True


class TenantStatusUpdate(BaseModel):
    status: TenantStatus


class TenantSettingsUpdate(BaseModel):
    settings: Dict[str, Any]
    merge: bool = True


class MigrationRequest(BaseModel):
    revision: str = "head"
    fresh: bool = False


class MigrationResultResponse(BaseModel):
    tenant_id: str
    subdomain: str
    succeeded: bool
    error: Optional[str] = None
    task_id: Optional[str] = None


class BatchMigrationResponse(BaseModel):
    results: List[MigrationResultResponse] = []
    succeeded: int = 0
    failed: int = 0
    task_id: Optional[str] = None
