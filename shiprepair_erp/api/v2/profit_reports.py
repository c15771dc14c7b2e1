"""
Profit Reports API - generate drafts, confirm, and the export/print stubs.
"""
from fastapi import APIRouter, Query, status
from typing import Optional

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal
from shiprepair_erp.schemas.common import MessageResponse
from shiprepair_erp.schemas.profit_report import ProfitReportResponse, ProfitReportListResponse
from shiprepair_erp.services import profit_report_service

router = APIRouter()


@router.get("/work-orders/{work_order_id}/profit-reports", response_model=ProfitReportListResponse)
async def list_profit_reports(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    reports = await profit_report_service.list_reports(db, principal, work_order_id)
    return ProfitReportListResponse(items=[ProfitReportResponse.model_validate(r) for r in reports])


@router.post(
    "/work-orders/{work_order_id}/profit-reports/generate",
    response_model=ProfitReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_profit_report(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    """Compute a new DRAFT report from the current ledgers."""
    return await profit_report_service.generate_report(db, principal, work_order_id)


@router.get("/profit-reports/{report_id}", response_model=ProfitReportResponse)
async def get_profit_report(report_id: str, db: DbSession, principal: CurrentPrincipal):
    return await profit_report_service.get_report(db, principal, report_id)


@router.post("/profit-reports/{report_id}/confirm", response_model=ProfitReportResponse)
async def confirm_profit_report(report_id: str, db: DbSession, principal: CurrentPrincipal):
    """Confirm a draft: locks all cost lines and snapshots both ledgers."""
    return await profit_report_service.confirm_report(db, principal, report_id)


@router.get("/profit-reports/{report_id}/export", response_model=MessageResponse)
async def export_profit_report(
    report_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    export_format: Optional[str] = Query(None, alias="format", max_length=10),
):
    message = await profit_report_service.export_report(db, principal, report_id, export_format)
    return MessageResponse(message=message)


@router.get("/profit-reports/{report_id}/print", response_model=MessageResponse)
async def print_profit_report(report_id: str, db: DbSession, principal: CurrentPrincipal):
    message = await profit_report_service.print_report(db, principal, report_id)
    return MessageResponse(message=message)
