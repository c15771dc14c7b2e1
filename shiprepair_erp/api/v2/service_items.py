"""
Service Items API - equipment jobs under a work order, engineer assignment and attachments.
"""
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response
from typing import Optional

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal, BlobStore
from shiprepair_erp.config import settings
from shiprepair_erp.models.service_item import ServiceItemStatus
from shiprepair_erp.schemas.service_item import (
    ServiceItemInput,
    ServiceItemResponse,
    ServiceItemListResponse,
    ServiceAttachmentResponse,
)
from shiprepair_erp.security.rbac import Role, require_roles
from shiprepair_erp.services import service_items

router = APIRouter()

# Route-level gate; ownership of the work order is checked by the service
writers = [Depends(require_roles(Role.OPS, Role.ADMIN))]


@router.get("/work-orders/{work_order_id}/service-items", response_model=ServiceItemListResponse)
async def list_service_items(
    work_order_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    status_filter: Optional[ServiceItemStatus] = Query(None, alias="status"),
    engineer_id: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=255),
):
    items = await service_items.list_service_items(
        db,
        work_order_id,
        status=status_filter.value if status_filter else None,
        engineer_id=engineer_id,
        search=search,
    )
    return ServiceItemListResponse(items=[ServiceItemResponse.model_validate(item) for item in items])


@router.get("/service-items/{item_id}", response_model=ServiceItemResponse)
async def get_service_item(item_id: str, db: DbSession, principal: CurrentPrincipal):
    return await service_items.get_service_item(db, item_id)


@router.post(
    "/work-orders/{work_order_id}/service-items",
    response_model=ServiceItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=writers,
)
async def create_service_item(
    work_order_id: str,
    data: ServiceItemInput,
    db: DbSession,
    principal: CurrentPrincipal,
):
    """Add a service item. IN_PROGRESS needs at least one assigned engineer."""
    return await service_items.create_service_item(db, principal, work_order_id, data)


@router.put("/service-items/{item_id}", response_model=ServiceItemResponse, dependencies=writers)
async def update_service_item(
    item_id: str,
    data: ServiceItemInput,
    db: DbSession,
    principal: CurrentPrincipal,
):
    """Replace a service item, including its engineer assignment."""
    return await service_items.update_service_item(db, principal, item_id, data)


@router.delete("/service-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=writers)
async def delete_service_item(item_id: str, db: DbSession, principal: CurrentPrincipal):
    await service_items.delete_service_item(db, principal, item_id)


# Attachments

@router.post(
    "/service-items/{item_id}/attachments",
    response_model=ServiceAttachmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=writers,
)
async def upload_service_attachment(
    item_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    storage: BlobStore,
    file: UploadFile = File(...),
):
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    return await service_items.upload_attachment(
        db,
        storage,
        principal,
        item_id,
        filename=file.filename,
        mime_type=file.content_type,
        data=data,
    )


@router.get("/service-attachments/{attachment_id}/download")
async def download_service_attachment(
    attachment_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    storage: BlobStore,
):
    attachment, content = await service_items.download_attachment(db, storage, attachment_id)
    return Response(
        content=content,
        media_type=attachment.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{attachment.filename}"'},
    )


@router.delete(
    "/service-attachments/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=writers,
)
async def delete_service_attachment(
    attachment_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    storage: BlobStore,
):
    await service_items.delete_attachment(db, storage, principal, attachment_id)
