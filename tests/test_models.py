"""Tests for the tenant registry model"""

import pytest

from app.core.exceptions import InvalidStatusTransition
from app.models.tenant import Tenant, TenantStatus


def _tenant(status=TenantStatus.ACTIVE) -> Tenant:
    return Tenant(name="Acme", subdomain="acme", database_name="tenant_acme", status=status)


class TestStatusTransitions:

    @pytest.mark.parametrize("start, target", [
        (TenantStatus.ACTIVE, TenantStatus.SUSPENDED),
        (TenantStatus.SUSPENDED, TenantStatus.ACTIVE),
        (TenantStatus.ACTIVE, TenantStatus.INACTIVE),
        (TenantStatus.SUSPENDED, TenantStatus.INACTIVE),
        (TenantStatus.ACTIVE, TenantStatus.ACTIVE),
    ])
    def test_allowed(self, start, target):
        tenant = _tenant(start)
        tenant.transition_to(target)
        assert tenant.status == target

    @pytest.mark.parametrize("target", [TenantStatus.ACTIVE, TenantStatus.SUSPENDED])
    def test_inactive_is_terminal(self, target):
        tenant = _tenant(TenantStatus.INACTIVE)
        with pytest.raises(InvalidStatusTransition) as exc_info:
            tenant.transition_to(target)
        assert tenant.status == TenantStatus.INACTIVE
        assert exc_info.value.details["from"] == "inactive"

    def test_accepts_plain_strings(self):
        tenant = _tenant()
        tenant.transition_to("suspended")
        assert tenant.status == TenantStatus.SUSPENDED


def test_database_name_is_immutable():
    tenant = _tenant()
    with pytest.raises(ValueError):
        tenant.database_name = "tenant_other"


def test_database_name_same_value_allowed():
    tenant = _tenant()
    tenant.database_name = "tenant_acme"
    assert tenant.database_name == "tenant_acme"


def test_is_provisioned_flag():
    tenant = _tenant()
    assert tenant.is_provisioned is False
