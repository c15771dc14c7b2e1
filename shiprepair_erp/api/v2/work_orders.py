from fastapi import APIRouter, Query, status
from typing import Optional
from datetime import date

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal
from shiprepair_erp.models.work_order import WorkOrderStatus
from shiprepair_erp.exceptions import ValidationError
from shiprepair_erp.schemas.common import MessageResponse
from shiprepair_erp.schemas.work_order import (
    WorkOrderCreate,
    WorkOrderUpdate,
    WorkOrderDeleteRequest,
    WorkOrderResponse,
    WorkOrderListResponse,
    WorkOrderStats,
    WorkOrderAlerts,
)
from shiprepair_erp.security.rbac import ensure_can_export
from shiprepair_erp.services import work_order_service

router = APIRouter()


def _parse_statuses(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    values = [part.strip().upper() for part in raw.split(",") if part.strip()]
    valid = {s.value for s in WorkOrderStatus}
    unknown = [v for v in values if v not in valid]
    if unknown:
        raise ValidationError(f"Unknown status: {', '.join(unknown)}", field="status")
    return values or None


@router.get("", response_model=WorkOrderListResponse)
async def list_work_orders(
    db: DbSession,
    principal: CurrentPrincipal,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    search: Optional[str] = None,
    operating_company: Optional[str] = None,
    start_date_from: Optional[date] = None,
    start_date_to: Optional[date] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
):
    """List work orders with pagination and filtering.

    ``status`` accepts a comma-separated list and is matched after the
    derived status has been refreshed.
    """
    items, total = await work_order_service.list_work_orders(
        db,
        search=search,
        operating_company=operating_company,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        statuses=_parse_statuses(status_filter),
        page=page,
        page_size=page_size,
    )
    return WorkOrderListResponse(
        items=[WorkOrderResponse.model_validate(wo) for wo in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/stats", response_model=WorkOrderStats)
async def work_order_stats(db: DbSession, principal: CurrentPrincipal):
    """Dashboard counters."""
    return await work_order_service.get_stats(db)


@router.get("/alerts", response_model=WorkOrderAlerts)
async def work_order_alerts(db: DbSession, principal: CurrentPrincipal):
    return await work_order_service.get_alerts(db)


@router.get("/{work_order_id}", response_model=WorkOrderResponse)
async def get_work_order(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    """Get a single work order by ID."""
    return await work_order_service.get_work_order(db, work_order_id)


@router.post("", response_model=WorkOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_work_order(data: WorkOrderCreate, db: DbSession, principal: CurrentPrincipal):
    """Create a new DRAFT work order."""
    return await work_order_service.create_work_order(db, principal, data)


@router.patch("/{work_order_id}", response_model=WorkOrderResponse)
async def update_work_order(
    work_order_id: str,
    data: WorkOrderUpdate,
    db: DbSession,
    principal: CurrentPrincipal,
):
    return await work_order_service.update_work_order(db, principal, work_order_id, data)


@router.post("/{work_order_id}/generate", response_model=WorkOrderResponse)
async def generate_work_order_number(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    """Assign the internal number (one time only)."""
    return await work_order_service.generate_work_order_number(db, principal, work_order_id)


@router.post("/{work_order_id}/pending-settlement", response_model=WorkOrderResponse)
async def mark_pending_settlement(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    return await work_order_service.mark_pending_settlement(db, principal, work_order_id)


@router.delete("/{work_order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_work_order(
    work_order_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    body: Optional[WorkOrderDeleteRequest] = None,
):
    """Soft delete. Generated work orders require a reason."""
    await work_order_service.delete_work_order(db, principal, work_order_id, body.reason if body else None)


@router.get("/{work_order_id}/export", response_model=MessageResponse)
async def export_work_order(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    ensure_can_export(principal)
    work_order = await work_order_service.get_work_order(db, work_order_id)
    return MessageResponse(message=f"Export placeholder for work order {work_order.internal_no or work_order.id}")


@router.get("/{work_order_id}/print", response_model=MessageResponse)
async def print_work_order(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    ensure_can_export(principal)
    work_order = await work_order_service.get_work_order(db, work_order_id)
    return MessageResponse(message=f"Print placeholder for work order {work_order.internal_no or work_order.id}")
