"""
Tests for the RBAC (Role-Based Access Control) module.
"""
import pytest
from types import SimpleNamespace

from shiprepair_erp.exceptions import ForbiddenError
from shiprepair_erp.security.rbac import (
    Role, Principal,
    can_edit_work_order, can_view_financials, can_manage_work_order,
    can_create_work_order, can_lock_costs, can_export,
    ensure_can_edit_work_order, ensure_can_lock_costs, ensure_can_create_work_order, ensure_can_export,
)


def principal(role: Role, user_id: str = "u-1") -> Principal:
    return Principal(user_id=user_id, role=role)


OWNED = SimpleNamespace(id="wo-1", created_by_id="u-1")
FOREIGN = SimpleNamespace(id="wo-2", created_by_id="someone-else")


class TestRole:
    """Test Role enum."""

    def test_role_values(self):
        assert Role.ENGINEER == "ENGINEER"
        assert Role.FINANCE == "FINANCE"
        assert Role.OPS == "OPS"
        assert Role.ADMIN == "ADMIN"


class TestFinancialEdit:
    """Test edit rights over cost and income records."""

    def test_admin_and_finance_edit_anything(self):
        for role in (Role.ADMIN, Role.FINANCE):
            assert can_edit_work_order(principal(role), OWNED)
            assert can_edit_work_order(principal(role), FOREIGN)

    def test_ops_edits_only_own_work_orders(self):
        assert can_edit_work_order(principal(Role.OPS), OWNED)
        assert not can_edit_work_order(principal(Role.OPS), FOREIGN)

    def test_engineer_never_edits(self):
        assert not can_edit_work_order(principal(Role.ENGINEER), OWNED)

    def test_missing_work_order_denies_ops(self):
        assert not can_edit_work_order(principal(Role.OPS), None)


class TestFinancialView:
    """Test read access to financial records."""

    def test_engineer_has_no_financial_access(self):
        assert not can_view_financials(principal(Role.ENGINEER), OWNED)

    def test_ops_views_only_own(self):
        assert can_view_financials(principal(Role.OPS), OWNED)
        assert not can_view_financials(principal(Role.OPS), FOREIGN)

    def test_finance_views_all(self):
        assert can_view_financials(principal(Role.FINANCE), FOREIGN)


class TestWorkOrderManagement:
    """Test rights over the work order record itself."""

    def test_finance_cannot_manage_work_orders(self):
        assert not can_manage_work_order(principal(Role.FINANCE), OWNED)

    def test_ops_owner_and_admin_manage(self):
        assert can_manage_work_order(principal(Role.OPS), OWNED)
        assert can_manage_work_order(principal(Role.ADMIN), FOREIGN)
        assert not can_manage_work_order(principal(Role.OPS), FOREIGN)

    def test_create_is_ops_or_admin(self):
        assert can_create_work_order(principal(Role.OPS))
        assert can_create_work_order(principal(Role.ADMIN))
        assert not can_create_work_order(principal(Role.FINANCE))
        assert not can_create_work_order(principal(Role.ENGINEER))


class TestCostLocking:
    def test_only_finance_and_admin_lock(self):
        assert can_lock_costs(principal(Role.FINANCE))
        assert can_lock_costs(principal(Role.ADMIN))
        assert not can_lock_costs(principal(Role.OPS))
        assert not can_lock_costs(principal(Role.ENGINEER))


class TestExport:
    def test_engineer_cannot_export(self):
        assert not can_export(principal(Role.ENGINEER))
        assert can_export(principal(Role.OPS))

    def test_ensure_export_raises_for_engineer(self):
        with pytest.raises(ForbiddenError):
            ensure_can_export(principal(Role.ENGINEER))
        ensure_can_export(principal(Role.FINANCE))


class TestEnsureHelpers:
    """The ensure_* helpers raise ForbiddenError (403) on denial."""

    def test_ensure_edit_raises_for_foreign_ops(self):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_edit_work_order(principal(Role.OPS), FOREIGN)
        assert exc_info.value.status_code == 403

    def test_ensure_edit_passes_for_owner(self):
        ensure_can_edit_work_order(principal(Role.OPS), OWNED)

    def test_ensure_lock_raises_for_ops(self):
        with pytest.raises(ForbiddenError):
            ensure_can_lock_costs(principal(Role.OPS), OWNED)

    def test_ensure_create_raises_for_engineer(self):
        with pytest.raises(ForbiddenError):
            ensure_can_create_work_order(principal(Role.ENGINEER))
