from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional

from shiprepair_erp.models.service_item import ServiceItemStatus


class ServiceItemInput(BaseModel):
    """Create/update payload for a service item.

    Updates are full replacements, including the engineer assignment.
    """
    equipment_name: str = Field(..., min_length=1, max_length=255)
    model: Optional[str] = Field(None, max_length=255)
    serial: Optional[str] = Field(None, max_length=255)
    service_content: str = Field(..., min_length=1)
    status: ServiceItemStatus
    assigned_engineer_ids: list[str] = Field(default_factory=list)

    @field_validator("equipment_name", "service_content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("model", "serial")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return (v or "").strip() or None

    @field_validator("assigned_engineer_ids")
    @classmethod
    def dedupe(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def engineers_for_in_progress(self) -> "ServiceItemInput":
        if self.status == ServiceItemStatus.IN_PROGRESS and not self.assigned_engineer_ids:
            raise ValueError("At least one assigned engineer is required when status is IN_PROGRESS")
        return self


class EngineerResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class EngineerListResponse(BaseModel):
    engineers: list[EngineerResponse]


class ServiceAttachmentResponse(BaseModel):
    id: str
    service_item_id: str
    filename: str
    path: str
    mime_type: str
    size: int
    uploader_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceItemResponse(BaseModel):
    id: str
    work_order_id: str
    status: ServiceItemStatus
    equipment_name: str
    model: Optional[str] = None
    serial: Optional[str] = None
    service_content: str
    assigned_engineers: list[EngineerResponse]
    attachments: list[ServiceAttachmentResponse]
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceItemListResponse(BaseModel):
    items: list[ServiceItemResponse]
