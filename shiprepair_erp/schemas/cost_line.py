from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from shiprepair_erp.models.cost_line import CostCategory
from shiprepair_erp.schemas.common import Money

# Largest value the line_total column (NUMERIC(14, 2)) can hold
MAX_LINE_TOTAL = Decimal("999999999999.99")


class CostLineInput(BaseModel):
    """Create/update payload for a cost line.

    Any caller-supplied line total is ignored; the service always recomputes it.
    """
    item_name: str = Field(..., min_length=1, max_length=255)
    category: CostCategory
    unit_price: Decimal = Field(..., gt=0, max_digits=14, decimal_places=4)
    quantity: Decimal = Field(..., gt=0, max_digits=14, decimal_places=4)
    notes: Optional[str] = None

    @field_validator("item_name")
    @classmethod
    def item_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("item_name is required")
        return v.strip()

    @model_validator(mode="after")
    def line_total_fits(self) -> "CostLineInput":
        total = (self.unit_price * self.quantity).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if total > MAX_LINE_TOTAL:
            raise ValueError(f"unit_price x quantity must not exceed {MAX_LINE_TOTAL}")
        return self


class CostLineResponse(BaseModel):
    id: str
    work_order_id: str
    item_name: str
    category: CostCategory
    unit_price: Money
    quantity: Money
    line_total: Money
    notes: Optional[str] = None
    is_locked: bool
    locked_at: Optional[datetime] = None
    locked_by_id: Optional[str] = None
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CostSummary(BaseModel):
    total_cost: Money
    category_totals: dict[str, Money]


class CostLineMutationResponse(CostSummary):
    """A written cost line together with the refreshed work order totals."""
    cost_line: CostLineResponse


class CostAttachmentResponse(BaseModel):
    id: str
    work_order_id: str
    cost_line_id: Optional[str] = None
    filename: str
    path: str
    mime_type: str
    size: int
    uploader_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CostLineListResponse(CostSummary):
    items: list[CostLineResponse]
    attachments: list[CostAttachmentResponse]


class CostLineDeleteResponse(CostSummary):
    success: bool = True
