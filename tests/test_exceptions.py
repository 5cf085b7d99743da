"""Tests for the tenant error hierarchy"""

import pytest

from app.core.exceptions import (
    DuplicateSubdomain, InvalidSubdomain, ProvisioningFailed, SchemaApplicationFailed,
    TenantConnectionError, TenantError, TenantErrorKind, TenantInactive, TenantNotFound,
    TenantRegistryError, TenantResolutionError, TenantSuspended,
)


@pytest.mark.parametrize("error_class, status_code", [
    (TenantNotFound, 404),
    (TenantInactive, 403),
    (TenantSuspended, 403),
    (InvalidSubdomain, 422),
    (DuplicateSubdomain, 409),
    (TenantConnectionError, 503),
    (ProvisioningFailed, 500),
])
def test_status_codes(error_class, status_code):
    assert error_class("x").status_code == status_code


@pytest.mark.parametrize("error_class", [TenantNotFound, TenantInactive, TenantSuspended])
def test_resolution_errors_share_parent(error_class):
    assert issubclass(error_class, TenantResolutionError)


def test_to_dict():
    error = TenantNotFound("Tenant 'shop1' not found", {"subdomain": "shop1"})
    assert error.to_dict() == {
        "error": "tenant_not_found",
        "message": "Tenant 'shop1' not found",
        "details": {"subdomain": "shop1"},
    }


@pytest.mark.parametrize("error_class, phase", [
    (TenantRegistryError, "registry"),
    (ProvisioningFailed, "provisioning"),
    (SchemaApplicationFailed, "schema"),
])
def test_lifecycle_errors_carry_phase(error_class, phase):
    error = error_class("failed", {"subdomain": "shop1"})
    assert error.details == {"subdomain": "shop1", "phase": phase}
    assert isinstance(error, TenantError)


def test_kind_values_are_unique():
    values = [kind.value for kind in TenantErrorKind]
    assert len(values) == len(set(values))
