from pydantic import BaseModel
from datetime import datetime
from typing import Any, Optional

from shiprepair_erp.models.profit_report import ProfitReportStatus
from shiprepair_erp.schemas.common import Money


class ProfitReportResponse(BaseModel):
    id: str
    work_order_id: str
    status: ProfitReportStatus
    revenue_total: Money
    cost_total: Money
    profit: Money
    margin_percent: Money
    income_breakdown: dict[str, Any]
    cost_breakdown: dict[str, Any]
    profitability_rating: str
    payment_rating: str
    overall_rating: str
    locked_cost_snapshot: dict[str, Any]
    locked_invoice_snapshot: dict[str, Any]
    confirmed_by_id: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfitReportListResponse(BaseModel):
    items: list[ProfitReportResponse]
