"""
Cost Ledger API - cost lines, lock-all and supporting attachments.
"""
from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from typing import Optional

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal, BlobStore
from shiprepair_erp.config import settings
from shiprepair_erp.models.cost_line import CostCategory
from shiprepair_erp.schemas.common import LockResult
from shiprepair_erp.schemas.cost_line import (
    CostLineInput,
    CostLineResponse,
    CostLineListResponse,
    CostLineMutationResponse,
    CostLineDeleteResponse,
    CostAttachmentResponse,
    CostSummary,
)
from shiprepair_erp.services import cost_attachments, cost_ledger

router = APIRouter()


def _summary_fields(figures: cost_ledger.CostFigures) -> dict:
    return {"total_cost": figures.total_cost, "category_totals": figures.category_totals}


@router.get("/work-orders/{work_order_id}/cost-lines", response_model=CostLineListResponse)
async def list_cost_lines(
    work_order_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    category: Optional[CostCategory] = None,
    search: Optional[str] = Query(None, max_length=255),
):
    """Cost lines, attachments and totals for a work order.

    Totals always cover every active line, regardless of the filters.
    """
    work_order, lines = await cost_ledger.list_cost_lines(
        db, principal, work_order_id, category=category.value if category else None, search=search
    )
    attachments = await cost_attachments.list_attachments(db, work_order.id)
    figures = await cost_ledger.get_cost_summary(db, work_order.id)
    return CostLineListResponse(
        items=[CostLineResponse.model_validate(line) for line in lines],
        attachments=[CostAttachmentResponse.model_validate(a) for a in attachments],
        **_summary_fields(figures),
    )


@router.get("/work-orders/{work_order_id}/cost-summary", response_model=CostSummary)
async def cost_summary(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    work_order, _ = await cost_ledger.list_cost_lines(db, principal, work_order_id)
    figures = await cost_ledger.get_cost_summary(db, work_order.id)
    return CostSummary(**_summary_fields(figures))


@router.post(
    "/work-orders/{work_order_id}/cost-lines",
    response_model=CostLineMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_cost_line(
    work_order_id: str,
    data: CostLineInput,
    db: DbSession,
    principal: CurrentPrincipal,
):
    """Add a cost line. The line total is computed server-side."""
    line = await cost_ledger.create_cost_line(db, principal, work_order_id, data)
    figures = await cost_ledger.get_cost_summary(db, line.work_order_id)
    return CostLineMutationResponse(cost_line=CostLineResponse.model_validate(line), **_summary_fields(figures))


@router.post("/work-orders/{work_order_id}/cost-lines/lock-all", response_model=LockResult)
async def lock_all_cost_lines(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    """Lock every open cost line of a work order (FINANCE/ADMIN)."""
    locked = await cost_ledger.lock_all_cost_lines(db, principal, work_order_id)
    return LockResult(locked_count=locked)


@router.get("/cost-lines/{cost_line_id}", response_model=CostLineResponse)
async def get_cost_line(cost_line_id: str, db: DbSession, principal: CurrentPrincipal):
    return await cost_ledger.get_cost_line(db, principal, cost_line_id)


@router.put("/cost-lines/{cost_line_id}", response_model=CostLineMutationResponse)
async def update_cost_line(
    cost_line_id: str,
    data: CostLineInput,
    db: DbSession,
    principal: CurrentPrincipal,
):
    """Replace a cost line. Locked lines are rejected with 409."""
    line = await cost_ledger.update_cost_line(db, principal, cost_line_id, data)
    figures = await cost_ledger.get_cost_summary(db, line.work_order_id)
    return CostLineMutationResponse(cost_line=CostLineResponse.model_validate(line), **_summary_fields(figures))


@router.delete("/cost-lines/{cost_line_id}", response_model=CostLineDeleteResponse)
async def delete_cost_line(cost_line_id: str, db: DbSession, principal: CurrentPrincipal):
    work_order_id = await cost_ledger.delete_cost_line(db, principal, cost_line_id)
    figures = await cost_ledger.get_cost_summary(db, work_order_id)
    return CostLineDeleteResponse(**_summary_fields(figures))


# Attachments

@router.post(
    "/work-orders/{work_order_id}/cost-attachments",
    response_model=CostAttachmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_cost_attachment(
    work_order_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    storage: BlobStore,
    file: UploadFile = File(...),
    cost_line_id: Optional[str] = Form(None),
):
    """Upload a supporting document, optionally tied to one cost line."""
    # One byte past the limit is enough to reject oversize files
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    return await cost_attachments.upload_attachment(
        db,
        storage,
        principal,
        work_order_id,
        filename=file.filename,
        mime_type=file.content_type,
        data=data,
        cost_line_id=cost_line_id,
    )


@router.get("/cost-attachments/{attachment_id}/download")
async def download_cost_attachment(
    attachment_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    storage: BlobStore,
):
    attachment, content = await cost_attachments.download_attachment(db, storage, principal, attachment_id)
    return Response(
        content=content,
        media_type=attachment.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{attachment.filename}"'},
    )


@router.delete("/cost-attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cost_attachment(
    attachment_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
    storage: BlobStore,
):
    await cost_attachments.delete_attachment(db, storage, principal, attachment_id)
