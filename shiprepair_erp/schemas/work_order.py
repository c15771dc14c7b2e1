from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from typing import Optional

from shiprepair_erp.models.work_order import WorkOrderStatus


class WorkOrderBase(BaseModel):
    """Fields shared by create and response."""
    operating_company: str = Field(..., min_length=1, max_length=100)
    order_type: str = Field(..., min_length=1, max_length=50)
    payment_terms: str = Field(..., min_length=1, max_length=100)
    customer_company: str = Field(..., min_length=1, max_length=255)
    vessel_name: str = Field(..., min_length=1, max_length=255)
    imo: str = Field(..., min_length=1, max_length=20)
    vessel_type: Optional[str] = Field(None, max_length=100)
    year_built: Optional[int] = Field(None, ge=1800, le=2200)
    gross_tonnage: Optional[int] = Field(None, ge=0)
    vessel_notes: Optional[str] = None
    po: Optional[str] = Field(None, max_length=100)
    location_type: str = Field(..., min_length=1, max_length=50)
    location_name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date
    responsible_engineer_name: Optional[str] = Field(None, max_length=200)
    responsible_ops_name: Optional[str] = Field(None, max_length=200)


class WorkOrderCreate(WorkOrderBase):
    """Schema for creating a work order. Always starts as DRAFT."""

    @field_validator(
        "operating_company", "order_type", "payment_terms", "customer_company",
        "vessel_name", "imo", "location_type", "location_name", "city",
    )
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def check_schedule(self) -> "WorkOrderCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self


class WorkOrderUpdate(BaseModel):
    """Schema for updating a work order (all fields optional).

    The merged schedule window is validated by the service.
    """
    operating_company: Optional[str] = Field(None, min_length=1, max_length=100)
    order_type: Optional[str] = Field(None, min_length=1, max_length=50)
    payment_terms: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_company: Optional[str] = Field(None, min_length=1, max_length=255)
    vessel_name: Optional[str] = Field(None, min_length=1, max_length=255)
    imo: Optional[str] = Field(None, min_length=1, max_length=20)
    vessel_type: Optional[str] = Field(None, max_length=100)
    year_built: Optional[int] = Field(None, ge=1800, le=2200)
    gross_tonnage: Optional[int] = Field(None, ge=0)
    vessel_notes: Optional[str] = None
    po: Optional[str] = Field(None, max_length=100)
    location_type: Optional[str] = Field(None, min_length=1, max_length=50)
    location_name: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    responsible_engineer_name: Optional[str] = Field(None, max_length=200)
    responsible_ops_name: Optional[str] = Field(None, max_length=200)


class WorkOrderDeleteRequest(BaseModel):
    """Reason is mandatory once the work order has an internal number."""
    reason: Optional[str] = Field(None, max_length=2000)


class WorkOrderResponse(WorkOrderBase):
    """Schema for work order response."""
    id: str
    internal_no: Optional[str] = None
    status: WorkOrderStatus
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkOrderListResponse(BaseModel):
    """Paginated work order list response."""
    items: list[WorkOrderResponse]
    total: int
    page: int
    page_size: int


class NameCount(BaseModel):
    name: str
    count: int


class CityCount(BaseModel):
    city: str
    count: int


class WorkOrderStats(BaseModel):
    total_vessels: int
    total_work_orders: int
    draft: int
    pending_service: int
    in_service: int
    completed: int
    pending_settlement: int
    engineer_load: list[NameCount]
    region_distribution: list[CityCount]


class WorkOrderAlertItem(BaseModel):
    id: str
    internal_no: Optional[str] = None
    vessel_name: str
    start_date: date
    end_date: date

    class Config:
        from_attributes = True


class ServiceStatusMismatch(BaseModel):
    work_order_id: str
    internal_no: Optional[str] = None
    message: str


class WorkOrderAlerts(BaseModel):
    overdue: list[WorkOrderAlertItem]
    starting_soon: list[WorkOrderAlertItem]
    engineer_load: list[NameCount]
    service_status_mismatches: list[ServiceStatusMismatch]
