from enum import Enum
from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for API errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConflictError(BaseAPIException):
    """Resource conflict exception"""
    pass


class TenantErrorKind(str, Enum):
    NOT_FOUND = "tenant_not_found"
    INACTIVE = "tenant_inactive"
    SUSPENDED = "tenant_suspended"
    INVALID_SUBDOMAIN = "invalid_subdomain"
    DUPLICATE_SUBDOMAIN = "duplicate_subdomain"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    CONNECTION_ERROR = "tenant_connection_error"
    NOT_BOUND = "tenant_not_bound"
    CONTEXT_CONFLICT = "tenant_context_conflict"
    REGISTRY_FAILED = "registry_failed"
    PROVISIONING_FAILED = "provisioning_failed"
    SCHEMA_APPLICATION_FAILED = "schema_application_failed"


class TenantError(BaseAPIException):
    """Tenant-related error exception.

    Every subclass carries a ``kind`` so callers and handlers can branch on
    the failure without string matching.
    """

    kind: TenantErrorKind
    status_code: int = 500

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class TenantResolutionError(TenantError):
    """Request could not be routed to a tenant"""
    pass


class TenantNotFound(TenantResolutionError):
    kind = TenantErrorKind.NOT_FOUND
    status_code = 404


class TenantInactive(TenantResolutionError):
    kind = TenantErrorKind.INACTIVE
    status_code = 403


class TenantSuspended(TenantResolutionError):
    kind = TenantErrorKind.SUSPENDED
    status_code = 403


class InvalidSubdomain(TenantError):
    kind = TenantErrorKind.INVALID_SUBDOMAIN
    status_code = 422


class DuplicateSubdomain(TenantError):
    kind = TenantErrorKind.DUPLICATE_SUBDOMAIN
    status_code = 409


class InvalidStatusTransition(TenantError):
    kind = TenantErrorKind.INVALID_STATUS_TRANSITION
    status_code = 409


class TenantConnectionError(TenantError):
    """Binding the tenant database failed"""
    kind = TenantErrorKind.CONNECTION_ERROR
    status_code = 503


class TenantNotBound(TenantError):
    """Code asked for the current tenant outside a tenant scope"""
    kind = TenantErrorKind.NOT_BOUND


class TenantContextError(TenantError):
    """A context already bound to one tenant was asked to bind another"""
    kind = TenantErrorKind.CONTEXT_CONFLICT


class TenantLifecycleError(TenantError):
    """Administrative lifecycle failure; ``phase`` names the step that failed"""

    phase: str = "registry"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.details.setdefault("phase", self.phase)


class TenantRegistryError(TenantLifecycleError):
    kind = TenantErrorKind.REGISTRY_FAILED
    phase = "registry"


class ProvisioningFailed(TenantLifecycleError):
    kind = TenantErrorKind.PROVISIONING_FAILED
    phase = "provisioning"


class SchemaApplicationFailed(TenantLifecycleError):
    kind = TenantErrorKind.SCHEMA_APPLICATION_FAILED
    phase = "schema"
