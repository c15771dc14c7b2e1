"""Cost ledger service.

Cost lines record what a work order consumed. Line totals are always computed
here from unit price and quantity; a caller-supplied total never reaches the
database.

Locked lines are immutable. Updates and deletes are issued as conditional
writes (``WHERE is_locked = false``) so that a lock committed by a concurrent
confirmation always wins over an edit that read the line before it was locked.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.exceptions import NotFoundError, ConflictError
from shiprepair_erp.models.cost_line import CostLine
from shiprepair_erp.models.work_order import WorkOrder
from shiprepair_erp.schemas.cost_line import CostLineInput
from shiprepair_erp.security.rbac import (
    Principal,
    ensure_can_edit_work_order,
    ensure_can_lock_costs,
    ensure_can_view_financials,
)
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.work_order_service import get_active_work_order
from shiprepair_erp.utils import clock

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_line_total(unit_price: Decimal, quantity: Decimal) -> Decimal:
    """round(unit_price * quantity, 2), half up."""
    return quantize_money(Decimal(unit_price) * Decimal(quantity))


@dataclass
class CostFigures:
    total_cost: Decimal = ZERO
    category_totals: dict[str, Decimal] = field(default_factory=dict)


def summarize_cost_lines(lines: list[CostLine]) -> CostFigures:
    """Totals over non-deleted lines. Categories without lines are omitted."""
    figures = CostFigures()
    for line in lines:
        if line.deleted_at is not None:
            continue
        amount = quantize_money(line.line_total)
        figures.total_cost += amount
        figures.category_totals[line.category] = figures.category_totals.get(line.category, ZERO) + amount
    figures.total_cost = quantize_money(figures.total_cost)
    return figures


async def load_active_cost_lines(
    db: AsyncSession,
    work_order_id: str,
    *,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> list[CostLine]:
    query = select(CostLine).where(CostLine.work_order_id == work_order_id, CostLine.deleted_at.is_(None))
    if category:
        query = query.where(CostLine.category == category)
    if search and search.strip():
        query = query.where(CostLine.item_name.ilike(f"%{search.strip()}%"))
    # Lock writes bypass the identity map, so always reload
    query = query.order_by(CostLine.created_at, CostLine.id).execution_options(populate_existing=True)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_cost_summary(db: AsyncSession, work_order_id: str) -> CostFigures:
    return summarize_cost_lines(await load_active_cost_lines(db, work_order_id))


async def _get_active_line(db: AsyncSession, cost_line_id: str) -> CostLine:
    result = await db.execute(
        select(CostLine)
        .where(CostLine.id == cost_line_id, CostLine.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    line = result.scalar_one_or_none()
    if not line:
        raise NotFoundError("Cost line", cost_line_id)
    return line


async def list_cost_lines(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> tuple[WorkOrder, list[CostLine]]:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_view_financials(principal, work_order)
    lines = await load_active_cost_lines(db, work_order_id, category=category, search=search)
    return work_order, lines


async def get_cost_line(db: AsyncSession, principal: Principal, cost_line_id: str) -> CostLine:
    line = await _get_active_line(db, cost_line_id)
    work_order = await get_active_work_order(db, line.work_order_id)
    ensure_can_view_financials(principal, work_order)
    return line


async def create_cost_line(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    data: CostLineInput,
) -> CostLine:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_edit_work_order(principal, work_order)

    line = CostLine(
        work_order_id=work_order.id,
        item_name=data.item_name,
        category=data.category.value,
        unit_price=data.unit_price,
        quantity=data.quantity,
        line_total=compute_line_total(data.unit_price, data.quantity),
        notes=data.notes,
        is_locked=False,
        created_by_id=principal.user_id,
    )
    db.add(line)
    await db.flush()
    await record_audit(db, principal.user_id, "COST_LINE_CREATE", "CostLine", line.id)
    await db.commit()

    logger.info(
        f"Cost line created: {line.item_name} = {line.line_total}",
        extra={"work_order_id": work_order.id, "cost_line_id": line.id},
    )
    return line


async def _raise_write_rejected(db: AsyncSession, cost_line_id: str) -> None:
    """A conditional write matched nothing: tell deleted apart from locked."""
    current = await db.get(CostLine, cost_line_id, populate_existing=True)
    if current is None or current.deleted_at is not None:
        raise NotFoundError("Cost line", cost_line_id)
    raise ConflictError("Cost line is locked")


async def update_cost_line(
    db: AsyncSession,
    principal: Principal,
    cost_line_id: str,
    data: CostLineInput,
) -> CostLine:
    line = await _get_active_line(db, cost_line_id)
    work_order = await get_active_work_order(db, line.work_order_id)
    ensure_can_edit_work_order(principal, work_order)
    if line.is_locked:
        raise ConflictError("Cost line is locked")

    result = await db.execute(
        update(CostLine)
        .where(
            CostLine.id == line.id,
            CostLine.is_locked.is_(False),
            CostLine.deleted_at.is_(None),
        )
        .values(
            item_name=data.item_name,
            category=data.category.value,
            unit_price=data.unit_price,
            quantity=data.quantity,
            line_total=compute_line_total(data.unit_price, data.quantity),
            notes=data.notes,
            updated_at=clock.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await _raise_write_rejected(db, line.id)

    await record_audit(db, principal.user_id, "COST_LINE_UPDATE", "CostLine", line.id)
    await db.commit()
    await db.refresh(line)
    return line


async def delete_cost_line(db: AsyncSession, principal: Principal, cost_line_id: str) -> str:
    """Soft delete. Returns the owning work order id."""
    line = await _get_active_line(db, cost_line_id)
    work_order = await get_active_work_order(db, line.work_order_id)
    ensure_can_edit_work_order(principal, work_order)
    if line.is_locked:
        raise ConflictError("Cost line is locked")

    result = await db.execute(
        update(CostLine)
        .where(
            CostLine.id == line.id,
            CostLine.is_locked.is_(False),
            CostLine.deleted_at.is_(None),
        )
        .values(deleted_at=clock.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await _raise_write_rejected(db, line.id)

    await record_audit(db, principal.user_id, "COST_LINE_DELETE", "CostLine", line.id)
    await db.commit()
    await db.refresh(line)
    return work_order.id


async def lock_cost_lines(
    db: AsyncSession,
    work_order_id: str,
    actor_id: str,
    locked_at: Optional[datetime] = None,
) -> int:
    """Lock every unlocked, non-deleted line of a work order. Does not commit.

    Returns the number of lines newly locked.
    """
    result = await db.execute(
        update(CostLine)
        .where(
            CostLine.work_order_id == work_order_id,
            CostLine.deleted_at.is_(None),
            CostLine.is_locked.is_(False),
        )
        .values(is_locked=True, locked_at=locked_at or clock.utcnow(), locked_by_id=actor_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def lock_all_cost_lines(db: AsyncSession, principal: Principal, work_order_id: str) -> int:
    """Explicit lock-all. Idempotent: a second call locks nothing."""
    ensure_can_lock_costs(principal)
    work_order = await get_active_work_order(db, work_order_id)

    locked = await lock_cost_lines(db, work_order.id, principal.user_id)
    await record_audit(db, principal.user_id, "COST_LINE_LOCK", "WorkOrder", work_order.id)
    await db.commit()

    logger.info(
        f"Locked {locked} cost line(s)",
        extra={"work_order_id": work_order.id, "user_id": principal.user_id},
    )
    return locked
