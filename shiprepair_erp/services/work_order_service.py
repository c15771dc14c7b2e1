"""Work order registry.

Owns the work order lifecycle: creation, internal number generation, the
derived status, soft deletion and the dashboard aggregates. Status is never
trusted from storage; every read path recomputes it from the internal number
and the schedule window and persists the result when it drifted.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Optional
import logging

from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.config import settings
from shiprepair_erp.exceptions import NotFoundError, ConflictError, ValidationError
from shiprepair_erp.models.service_item import ServiceItem, ServiceItemStatus
from shiprepair_erp.models.work_order import WorkOrder, WorkOrderStatus
from shiprepair_erp.schemas.work_order import WorkOrderCreate, WorkOrderUpdate
from shiprepair_erp.security.rbac import (
    Principal,
    ensure_can_create_work_order,
    ensure_can_manage_work_order,
)
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.notification_service import notify_work_order_deleted
from shiprepair_erp.utils import clock

logger = logging.getLogger(__name__)

OPERATING_COMPANY_PREFIXES = {
    "wormos": "XQ",
    "iship": "KD",
}
DEFAULT_PREFIX = "AX"

# Fields that may never be cleared on update
REQUIRED_FIELDS = {
    "operating_company",
    "order_type",
    "payment_terms",
    "customer_company",
    "vessel_name",
    "imo",
    "location_type",
    "location_name",
    "city",
    "start_date",
    "end_date",
}

SEARCH_COLUMNS = (
    WorkOrder.internal_no,
    WorkOrder.vessel_name,
    WorkOrder.imo,
    WorkOrder.po,
    WorkOrder.customer_company,
    WorkOrder.location_name,
    WorkOrder.city,
)


def prefix_for_operating_company(operating_company: str) -> str:
    return OPERATING_COMPANY_PREFIXES.get((operating_company or "").strip().lower(), DEFAULT_PREFIX)


def derive_status(
    internal_no: Optional[str],
    start_date: date,
    end_date: date,
    current_status: Optional[str],
    today: date,
) -> WorkOrderStatus:
    """Status implied by the number, the schedule window and the calendar.

    PENDING_SETTLEMENT is a manual stage and sticks once set on a generated
    work order.
    """
    if not internal_no:
        return WorkOrderStatus.DRAFT
    if current_status == WorkOrderStatus.PENDING_SETTLEMENT.value:
        return WorkOrderStatus.PENDING_SETTLEMENT
    if today < start_date:
        return WorkOrderStatus.PENDING_SERVICE
    if today > end_date:
        return WorkOrderStatus.COMPLETED
    return WorkOrderStatus.IN_SERVICE


def apply_derived_status(work_order: WorkOrder, today: Optional[date] = None) -> bool:
    """Set the cached status from derive_status. Returns True when it changed."""
    derived = derive_status(
        work_order.internal_no,
        work_order.start_date,
        work_order.end_date,
        work_order.status,
        today or clock.today(),
    )
    if work_order.status != derived.value:
        work_order.status = derived.value
        return True
    return False


async def sync_status(db: AsyncSession, work_order: WorkOrder, today: Optional[date] = None) -> WorkOrder:
    if apply_derived_status(work_order, today):
        await db.commit()
        logger.debug(f"Work order {work_order.id} status synced to {work_order.status}")
    return work_order


async def sync_all_statuses(db: AsyncSession, today: Optional[date] = None) -> int:
    """Bring every active work order's stored status in line with derive_status."""
    today = today or clock.today()
    active = WorkOrder.deleted_at.is_(None)
    generated = WorkOrder.internal_no.is_not(None)
    not_settling = WorkOrder.status != WorkOrderStatus.PENDING_SETTLEMENT.value

    rules = [
        (WorkOrderStatus.DRAFT, [WorkOrder.internal_no.is_(None)]),
        (WorkOrderStatus.PENDING_SERVICE, [generated, not_settling, WorkOrder.start_date > today]),
        (
            WorkOrderStatus.COMPLETED,
            [generated, not_settling, WorkOrder.start_date <= today, WorkOrder.end_date < today],
        ),
        (
            WorkOrderStatus.IN_SERVICE,
            [generated, not_settling, WorkOrder.start_date <= today, WorkOrder.end_date >= today],
        ),
    ]

    changed = 0
    for target, conditions in rules:
        result = await db.execute(
            update(WorkOrder)
            .where(active, WorkOrder.status != target.value, *conditions)
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        changed += result.rowcount or 0

    if changed:
        await db.commit()
        logger.info(f"Synced status on {changed} work order(s)")
    return changed


async def get_active_work_order(db: AsyncSession, work_order_id: str, for_update: bool = False) -> WorkOrder:
    """Load a non-deleted work order or raise NotFoundError."""
    query = (
        select(WorkOrder)
        .where(WorkOrder.id == work_order_id, WorkOrder.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    work_order = result.scalar_one_or_none()
    if not work_order:
        raise NotFoundError("Work order", work_order_id)
    return work_order


async def get_work_order(db: AsyncSession, work_order_id: str, today: Optional[date] = None) -> WorkOrder:
    work_order = await get_active_work_order(db, work_order_id)
    return await sync_status(db, work_order, today)


async def list_work_orders(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    operating_company: Optional[str] = None,
    start_date_from: Optional[date] = None,
    start_date_to: Optional[date] = None,
    statuses: Optional[list[str]] = None,
    page: int = 1,
    page_size: int = 20,
    today: Optional[date] = None,
) -> tuple[list[WorkOrder], int]:
    """Filtered, paginated list of active work orders, newest first."""
    await sync_all_statuses(db, today)

    query = select(WorkOrder).where(WorkOrder.deleted_at.is_(None))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.where(or_(*(column.ilike(pattern) for column in SEARCH_COLUMNS)))
    if operating_company:
        query = query.where(WorkOrder.operating_company == operating_company)
    if start_date_from:
        query = query.where(WorkOrder.start_date >= start_date_from)
    if start_date_to:
        query = query.where(WorkOrder.start_date <= start_date_to)
    if statuses:
        query = query.where(WorkOrder.status.in_(statuses))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * page_size
    query = (
        query.order_by(WorkOrder.created_at.desc(), WorkOrder.id)
        .offset(offset)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def _load_synced_active(db: AsyncSession, today: Optional[date]) -> list[WorkOrder]:
    await sync_all_statuses(db, today)
    result = await db.execute(
        select(WorkOrder)
        .where(WorkOrder.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def _engineer_load(work_orders: list[WorkOrder]) -> Counter:
    busy = (WorkOrderStatus.PENDING_SERVICE.value, WorkOrderStatus.IN_SERVICE.value)
    return Counter(
        wo.responsible_engineer_name
        for wo in work_orders
        if wo.responsible_engineer_name and wo.status in busy
    )


def _sorted_counts(counter: Counter) -> list[tuple[str, int]]:
    return sorted(counter.items(), key=lambda item: (-item[1], item[0]))


async def get_stats(db: AsyncSession, today: Optional[date] = None) -> dict:
    """Dashboard aggregates over all active work orders."""
    work_orders = await _load_synced_active(db, today)
    by_status = Counter(wo.status for wo in work_orders)
    regions = Counter(wo.city for wo in work_orders if wo.city)

    return {
        "total_vessels": len({wo.imo for wo in work_orders}),
        "total_work_orders": len(work_orders),
        "draft": by_status[WorkOrderStatus.DRAFT.value],
        "pending_service": by_status[WorkOrderStatus.PENDING_SERVICE.value],
        "in_service": by_status[WorkOrderStatus.IN_SERVICE.value],
        "completed": by_status[WorkOrderStatus.COMPLETED.value],
        "pending_settlement": by_status[WorkOrderStatus.PENDING_SETTLEMENT.value],
        "engineer_load": [
            {"name": name, "count": count} for name, count in _sorted_counts(_engineer_load(work_orders))
        ],
        "region_distribution": [{"city": city, "count": count} for city, count in _sorted_counts(regions)],
    }


async def _work_orders_with_completed_items(db: AsyncSession) -> set[str]:
    result = await db.execute(
        select(ServiceItem.work_order_id)
        .where(
            ServiceItem.status == ServiceItemStatus.COMPLETED.value,
            ServiceItem.deleted_at.is_(None),
        )
        .distinct()
    )
    return set(result.scalars().all())


async def get_alerts(db: AsyncSession, today: Optional[date] = None) -> dict:
    """Overdue, starting-soon, overloaded-engineer and service status mismatch alerts."""
    today = today or clock.today()
    work_orders = await _load_synced_active(db, today)
    horizon = today + timedelta(days=settings.STARTING_SOON_DAYS)

    overdue = [
        wo for wo in work_orders
        if wo.status != WorkOrderStatus.COMPLETED.value and today > wo.end_date
    ]
    starting_soon = [
        wo for wo in work_orders
        if wo.status != WorkOrderStatus.DRAFT.value and today <= wo.start_date <= horizon
    ]
    heavy = [
        {"name": name, "count": count}
        for name, count in _sorted_counts(_engineer_load(work_orders))
        if count > settings.ENGINEER_OVERLOAD_THRESHOLD
    ]

    # A finished service item on a work order that is still scheduled or running
    busy = (WorkOrderStatus.PENDING_SERVICE.value, WorkOrderStatus.IN_SERVICE.value)
    finished = await _work_orders_with_completed_items(db)
    mismatches = [
        {
            "work_order_id": wo.id,
            "internal_no": wo.internal_no,
            "message": "Service items show completed but work order not completed",
        }
        for wo in work_orders
        if wo.status in busy and wo.id in finished
    ]

    return {
        "overdue": sorted(overdue, key=lambda wo: wo.end_date),
        "starting_soon": sorted(starting_soon, key=lambda wo: wo.start_date),
        "engineer_load": heavy,
        "service_status_mismatches": mismatches,
    }


async def create_work_order(db: AsyncSession, principal: Principal, data: WorkOrderCreate) -> WorkOrder:
    """Create a DRAFT work order owned by the caller."""
    ensure_can_create_work_order(principal)

    work_order = WorkOrder(
        **data.model_dump(),
        status=WorkOrderStatus.DRAFT.value,
        internal_no=None,
        created_by_id=principal.user_id,
    )
    db.add(work_order)
    await db.flush()
    await record_audit(db, principal.user_id, "WORK_ORDER_CREATE", "WorkOrder", work_order.id)
    await db.commit()

    logger.info(
        f"Work order created for vessel {work_order.vessel_name}",
        extra={"work_order_id": work_order.id, "user_id": principal.user_id},
    )
    return work_order


async def update_work_order(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    data: WorkOrderUpdate,
) -> WorkOrder:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_manage_work_order(principal, work_order)

    changes = data.model_dump(exclude_unset=True)
    errors = []
    for field, value in changes.items():
        if isinstance(value, str):
            value = value.strip()
            changes[field] = value
        if field in REQUIRED_FIELDS and (value is None or value == ""):
            errors.append({"field": field, "message": f"{field} is required"})
    if errors:
        raise ValidationError("Invalid work order update", errors=errors)

    start = changes.get("start_date", work_order.start_date)
    end = changes.get("end_date", work_order.end_date)
    if start > end:
        raise ValidationError("start_date must be before or equal to end_date", field="start_date")

    for field, value in changes.items():
        setattr(work_order, field, value)
    apply_derived_status(work_order)

    await record_audit(db, principal.user_id, "WORK_ORDER_UPDATE", "WorkOrder", work_order.id)
    await db.commit()
    return work_order


async def generate_internal_no(db: AsyncSession, operating_company: str, on_date: date) -> str:
    """Next free number for the company prefix and day, e.g. XQ-20260115-003."""
    stem = f"{prefix_for_operating_company(operating_company)}-{on_date:%Y%m%d}"
    count = await db.scalar(
        select(func.count()).select_from(WorkOrder).where(WorkOrder.internal_no.like(f"{stem}%"))
    )
    return f"{stem}-{(count or 0) + 1:03d}"


async def generate_work_order_number(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    today: Optional[date] = None,
) -> WorkOrder:
    """Assign the internal number once and recompute the status in the same write."""
    today = today or clock.today()
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_manage_work_order(principal, work_order)

    if work_order.internal_no:
        raise ConflictError("Internal number already generated")

    work_order.internal_no = await generate_internal_no(db, work_order.operating_company, today)
    apply_derived_status(work_order, today)

    try:
        await record_audit(db, principal.user_id, "WORK_ORDER_GENERATE", "WorkOrder", work_order.id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Internal number collision for work order {work_order_id}")
        raise ConflictError("Internal number collision, please retry")

    logger.info(
        f"Generated internal number {work_order.internal_no}",
        extra={"work_order_id": work_order.id, "user_id": principal.user_id},
    )
    return work_order


async def mark_pending_settlement(db: AsyncSession, principal: Principal, work_order_id: str) -> WorkOrder:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_manage_work_order(principal, work_order)

    if not work_order.internal_no:
        raise ConflictError("Work order must have an internal number before settlement")
    if work_order.status == WorkOrderStatus.PENDING_SETTLEMENT.value:
        return work_order

    work_order.status = WorkOrderStatus.PENDING_SETTLEMENT.value
    await record_audit(db, principal.user_id, "WORK_ORDER_SETTLEMENT", "WorkOrder", work_order.id)
    await db.commit()
    return work_order


async def delete_work_order(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    reason: Optional[str] = None,
) -> None:
    """Soft delete. A generated work order needs a reason and notifies the admins."""
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_manage_work_order(principal, work_order)

    reason = (reason or "").strip() or None
    if work_order.internal_no and not reason:
        raise ConflictError("A delete reason is required once the internal number is generated")

    work_order.deleted_at = clock.utcnow()
    work_order.delete_reason = reason

    await record_audit(db, principal.user_id, "WORK_ORDER_DELETE", "WorkOrder", work_order.id)
    await notify_work_order_deleted(db, work_order, principal.user_id, reason)
    await db.commit()

    logger.info(
        f"Work order {work_order.internal_no or work_order.id} deleted",
        extra={"work_order_id": work_order.id, "user_id": principal.user_id},
    )
