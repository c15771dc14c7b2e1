"""Supporting documents for cost lines.

Uploads are checked against the MIME allowlist and the size limit before any
bytes reach the blob store. An attachment tied to a locked cost line can be
neither added nor removed.
"""

from typing import Optional
import logging

from sqlalchemy import select
from starlette.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.config import settings
from shiprepair_erp.exceptions import NotFoundError, ConflictError, ValidationError
from shiprepair_erp.models.cost_line import CostAttachment, CostLine
from shiprepair_erp.security.rbac import Principal, ensure_can_edit_work_order, ensure_can_view_financials
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.blob_storage import LocalBlobStorage
from shiprepair_erp.services.work_order_service import get_active_work_order

logger = logging.getLogger(__name__)


def validate_upload(filename: Optional[str], mime_type: Optional[str], size: int) -> None:
    if not filename:
        raise ValidationError("File is required", field="file")
    if mime_type not in settings.ALLOWED_ATTACHMENT_MIME_TYPES:
        raise ValidationError(f"Unsupported file type: {mime_type}", field="file")
    if size > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File exceeds the {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit", field="file"
        )


async def list_attachments(db: AsyncSession, work_order_id: str) -> list[CostAttachment]:
    result = await db.execute(
        select(CostAttachment)
        .where(CostAttachment.work_order_id == work_order_id)
        .order_by(CostAttachment.created_at, CostAttachment.id)
    )
    return list(result.scalars().all())


async def _get_linkable_line(db: AsyncSession, work_order_id: str, cost_line_id: str) -> CostLine:
    line = await db.get(CostLine, cost_line_id, populate_existing=True)
    if not line or line.work_order_id != work_order_id or line.deleted_at is not None:
        raise NotFoundError("Cost line", cost_line_id)
    if line.is_locked:
        raise ConflictError("Cost line is locked")
    return line


async def upload_attachment(
    db: AsyncSession,
    storage: LocalBlobStorage,
    principal: Principal,
    work_order_id: str,
    filename: Optional[str],
    mime_type: Optional[str],
    data: bytes,
    cost_line_id: Optional[str] = None,
) -> CostAttachment:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_edit_work_order(principal, work_order)
    validate_upload(filename, mime_type, len(data))
    if cost_line_id:
        await _get_linkable_line(db, work_order.id, cost_line_id)

    path = await run_in_threadpool(storage.store, data, filename)
    attachment = CostAttachment(
        work_order_id=work_order.id,
        cost_line_id=cost_line_id or None,
        path=path,
        filename=filename,
        mime_type=mime_type,
        size=len(data),
        uploader_id=principal.user_id,
    )
    db.add(attachment)
    try:
        await db.flush()
        await record_audit(db, principal.user_id, "COST_ATTACHMENT_UPLOAD", "CostAttachment", attachment.id)
        await db.commit()
    except Exception:
        # Row never landed, drop the orphaned blob
        await run_in_threadpool(storage.delete, path)
        raise

    logger.info(
        f"Attachment {filename} uploaded ({len(data)} bytes)",
        extra={"work_order_id": work_order.id, "attachment_id": attachment.id},
    )
    return attachment


async def _get_attachment(db: AsyncSession, attachment_id: str) -> CostAttachment:
    attachment = await db.get(CostAttachment, attachment_id)
    if not attachment:
        raise NotFoundError("Attachment", attachment_id)
    return attachment


async def download_attachment(
    db: AsyncSession,
    storage: LocalBlobStorage,
    principal: Principal,
    attachment_id: str,
) -> tuple[CostAttachment, bytes]:
    attachment = await _get_attachment(db, attachment_id)
    work_order = await get_active_work_order(db, attachment.work_order_id)
    ensure_can_view_financials(principal, work_order)
    return attachment, await run_in_threadpool(storage.retrieve, attachment.path)


async def delete_attachment(
    db: AsyncSession,
    storage: LocalBlobStorage,
    principal: Principal,
    attachment_id: str,
) -> None:
    attachment = await _get_attachment(db, attachment_id)
    work_order = await get_active_work_order(db, attachment.work_order_id)
    ensure_can_edit_work_order(principal, work_order)

    if attachment.cost_line_id:
        line = await db.get(CostLine, attachment.cost_line_id, populate_existing=True)
        if line and line.is_locked:
            raise ConflictError("Attachment belongs to a locked cost line")

    path = attachment.path
    await db.delete(attachment)
    await record_audit(db, principal.user_id, "COST_ATTACHMENT_DELETE", "CostAttachment", attachment_id)
    await db.commit()
    # Blob removal after commit; a leftover file is only logged
    await run_in_threadpool(storage.delete, path)
