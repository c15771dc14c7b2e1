from shiprepair_erp.security.rbac import (
    Role,
    Principal,
    can_edit_work_order,
    can_view_financials,
    can_manage_work_order,
    can_create_work_order,
    can_lock_costs,
    can_export,
    ensure_can_export,
    require_roles,
)

__all__ = [
    "Role",
    "Principal",
    "can_edit_work_order",
    "can_view_financials",
    "can_manage_work_order",
    "can_create_work_order",
    "can_lock_costs",
    "can_export",
    "ensure_can_export",
    "require_roles",
]
