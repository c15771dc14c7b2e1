from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from shiprepair_erp.models.invoice import InvoiceStatus
from shiprepair_erp.schemas.common import Money


class InvoiceCreate(BaseModel):
    """Schema for creating an invoice."""
    invoice_no: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    issue_date: date
    due_date: Optional[date] = None
    status: InvoiceStatus
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    """Schema for updating an invoice (all fields optional)."""
    invoice_no: Optional[str] = Field(None, min_length=1, max_length=50)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[InvoiceStatus] = None
    notes: Optional[str] = None


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: str
    work_order_id: str
    invoice_no: str
    amount: Money
    currency: str
    issue_date: date
    due_date: Optional[date] = None
    status: InvoiceStatus
    notes: Optional[str] = None
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    items: list[InvoiceResponse]
