"""
Role-Based Access Control (RBAC) Module

Pure policy functions over a verified principal and the owning work order.
Every mutation in the cost ledger, income ledger and profit report engine is
gated through here.

Matrix:
- ADMIN: everything
- FINANCE: all financial views and edits, cost locking; cannot edit the work order record
- OPS: creates work orders; edits and views only work orders they own,
  manages the service items of those work orders
- ENGINEER: no financial access; reads service items and dashboards
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable
import logging

from shiprepair_erp.exceptions import ForbiddenError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles."""
    ENGINEER = "ENGINEER"
    FINANCE = "FINANCE"
    OPS = "OPS"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    """Verified caller identity handed over by the token service."""
    user_id: str
    role: Role


def _is_owner(principal: Principal, work_order) -> bool:
    return work_order is not None and work_order.created_by_id == principal.user_id


def can_edit_work_order(principal: Principal, work_order) -> bool:
    """Edit rights over a work order's financial records."""
    if principal.role in (Role.ADMIN, Role.FINANCE):
        return True
    if principal.role == Role.OPS:
        return _is_owner(principal, work_order)
    return False


def can_view_financials(principal: Principal, work_order) -> bool:
    """Read access to cost lines, quotes, invoices, payments and profit reports."""
    if principal.role in (Role.ADMIN, Role.FINANCE):
        return True
    if principal.role == Role.OPS:
        return _is_owner(principal, work_order)
    return False


def can_manage_work_order(principal: Principal, work_order) -> bool:
    """Edit, number-generation and deletion rights over the work order record itself."""
    if principal.role == Role.ADMIN:
        return True
    return principal.role == Role.OPS and _is_owner(principal, work_order)


def can_create_work_order(principal: Principal) -> bool:
    return principal.role in (Role.OPS, Role.ADMIN)


def can_lock_costs(principal: Principal) -> bool:
    return principal.role in (Role.FINANCE, Role.ADMIN)


def can_export(principal: Principal) -> bool:
    """Export and print stubs are closed to engineers."""
    return principal.role != Role.ENGINEER


def _deny(principal: Principal, action: str, work_order=None) -> None:
    logger.warning(
        f"Permission denied: user {principal.user_id} ({principal.role.value}) cannot {action}",
        extra={
            "user_id": principal.user_id,
            "role": principal.role.value,
            "work_order_id": getattr(work_order, "id", None),
        },
    )
    raise ForbiddenError()


def ensure_can_edit_work_order(principal: Principal, work_order) -> None:
    if not can_edit_work_order(principal, work_order):
        _deny(principal, "edit financial records", work_order)


def ensure_can_view_financials(principal: Principal, work_order) -> None:
    if not can_view_financials(principal, work_order):
        _deny(principal, "view financial records", work_order)


def ensure_can_manage_work_order(principal: Principal, work_order) -> None:
    if not can_manage_work_order(principal, work_order):
        _deny(principal, "manage work order", work_order)


def ensure_can_create_work_order(principal: Principal) -> None:
    if not can_create_work_order(principal):
        _deny(principal, "create work orders")


def ensure_can_lock_costs(principal: Principal, work_order=None) -> None:
    if not can_lock_costs(principal):
        _deny(principal, "lock cost lines", work_order)


def ensure_can_export(principal: Principal, work_order=None) -> None:
    if not can_export(principal):
        _deny(principal, "export or print", work_order)


def require_roles(*roles: Role) -> Callable[[Principal], None]:
    """
    Dependency factory restricting a route to a set of roles.

    Usage:
        @router.post("/service-items", dependencies=[Depends(require_roles(Role.OPS, Role.ADMIN))])
        async def create_service_item(principal: CurrentPrincipal):
            ...
    """
    # Imported here so the policy functions stay importable without FastAPI deps
    from shiprepair_erp.api.deps import get_current_principal
    from fastapi import Depends

    allowed = set(roles)

    def checker(principal: Principal = Depends(get_current_principal)) -> None:
        if principal.role not in allowed:
            _deny(principal, f"access route restricted to {sorted(r.value for r in allowed)}")

    return checker
