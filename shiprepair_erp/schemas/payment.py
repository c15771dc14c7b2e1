from pydantic import BaseModel, Field
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional

from shiprepair_erp.schemas.common import Money


class PaymentCreate(BaseModel):
    """Schema for recording a payment receipt."""
    receipt_no: str = Field(..., min_length=1, max_length=50)
    invoice_id: Optional[str] = None
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    date: date_type
    method: str = Field(..., min_length=1, max_length=50)
    reference: Optional[str] = Field(None, max_length=255)


class PaymentUpdate(BaseModel):
    """Schema for updating a payment receipt (all fields optional)."""
    receipt_no: Optional[str] = Field(None, min_length=1, max_length=50)
    invoice_id: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    date: Optional[date_type] = None
    method: Optional[str] = Field(None, min_length=1, max_length=50)
    reference: Optional[str] = Field(None, max_length=255)


class PaymentResponse(BaseModel):
    """Schema for payment receipt response."""
    id: str
    work_order_id: str
    invoice_id: Optional[str] = None
    receipt_no: str
    amount: Money
    currency: str
    date: date_type
    method: str
    reference: Optional[str] = None
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]


class IncomeSummary(BaseModel):
    """Derived income figures for a work order, computed on demand."""
    invoice_total: Money
    receipts_total: Money
    outstanding: Money
    final_quote_amount: Money
    quote_total: Money
