from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from shiprepair_erp.schemas.common import Money


class QuoteCreate(BaseModel):
    """Schema for creating a quote. is_final=True demotes any other final quote."""
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    validity_date: Optional[date] = None
    notes: Optional[str] = None
    is_final: bool = False


class QuoteUpdate(BaseModel):
    """Schema for updating a quote (all fields optional)."""
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    validity_date: Optional[date] = None
    notes: Optional[str] = None
    is_final: Optional[bool] = None


class QuoteResponse(BaseModel):
    id: str
    work_order_id: str
    amount: Money
    currency: str
    validity_date: Optional[date] = None
    notes: Optional[str] = None
    is_final: bool
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuoteListResponse(BaseModel):
    items: list[QuoteResponse]
