"""Service items and their attachments.

Anyone signed in may read them. Writes need OPS or ADMIN at the route and the
work order management right here, so an OPS user only touches the service
items of work orders they own. Assigned engineers must be ENGINEER users.
"""

from typing import Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from shiprepair_erp.exceptions import NotFoundError, ValidationError
from shiprepair_erp.models.service_item import ServiceItem, ServiceAttachment
from shiprepair_erp.models.user import User
from shiprepair_erp.schemas.service_item import ServiceItemInput
from shiprepair_erp.security.rbac import Principal, Role, ensure_can_manage_work_order
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.blob_storage import LocalBlobStorage
from shiprepair_erp.services.cost_attachments import validate_upload
from shiprepair_erp.services.work_order_service import get_active_work_order
from shiprepair_erp.utils import clock

logger = logging.getLogger(__name__)

_LOAD_OPTIONS = (selectinload(ServiceItem.engineers), selectinload(ServiceItem.attachments))


async def list_engineers(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).where(User.role == Role.ENGINEER.value).order_by(User.name))
    return list(result.scalars().all())


async def _resolve_engineers(db: AsyncSession, engineer_ids: list[str]) -> list[User]:
    if not engineer_ids:
        return []
    result = await db.execute(
        select(User).where(User.id.in_(engineer_ids), User.role == Role.ENGINEER.value)
    )
    engineers = list(result.scalars().all())
    if len(engineers) != len(engineer_ids):
        raise ValidationError("Assigned engineers must be engineer role", field="assigned_engineer_ids")
    return engineers


async def _load_item(db: AsyncSession, item_id: str) -> ServiceItem:
    result = await db.execute(
        select(ServiceItem)
        .options(*_LOAD_OPTIONS)
        .where(ServiceItem.id == item_id, ServiceItem.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Service item", item_id)
    return item


async def list_service_items(
    db: AsyncSession,
    work_order_id: str,
    *,
    status: Optional[str] = None,
    engineer_id: Optional[str] = None,
    search: Optional[str] = None,
) -> list[ServiceItem]:
    """Active service items of a work order, most recently updated first."""
    work_order = await get_active_work_order(db, work_order_id)

    query = select(ServiceItem).options(*_LOAD_OPTIONS).where(
        ServiceItem.work_order_id == work_order.id,
        ServiceItem.deleted_at.is_(None),
    )
    if status:
        query = query.where(ServiceItem.status == status)
    if engineer_id:
        query = query.where(ServiceItem.engineers.any(User.id == engineer_id))
    if search and search.strip():
        query = query.where(ServiceItem.equipment_name.ilike(f"%{search.strip()}%"))

    result = await db.execute(
        query.order_by(ServiceItem.updated_at.desc(), ServiceItem.id).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_service_item(db: AsyncSession, item_id: str) -> ServiceItem:
    return await _load_item(db, item_id)


async def create_service_item(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    data: ServiceItemInput,
) -> ServiceItem:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_manage_work_order(principal, work_order)
    engineers = await _resolve_engineers(db, data.assigned_engineer_ids)

    item = ServiceItem(
        work_order_id=work_order.id,
        status=data.status.value,
        equipment_name=data.equipment_name,
        model=data.model,
        serial=data.serial,
        service_content=data.service_content,
        created_by_id=principal.user_id,
        engineers=engineers,
    )
    db.add(item)
    await db.flush()
    item_id = item.id
    await record_audit(db, principal.user_id, "SERVICE_ITEM_CREATE", "ServiceItem", item_id)
    await db.commit()

    logger.info(
        f"Service item {data.equipment_name} created",
        extra={"work_order_id": work_order.id, "service_item_id": item_id},
    )
    return await _load_item(db, item_id)


async def update_service_item(
    db: AsyncSession,
    principal: Principal,
    item_id: str,
    data: ServiceItemInput,
) -> ServiceItem:
    item = await _load_item(db, item_id)
    work_order = await get_active_work_order(db, item.work_order_id)
    ensure_can_manage_work_order(principal, work_order)
    engineers = await _resolve_engineers(db, data.assigned_engineer_ids)

    item.status = data.status.value
    item.equipment_name = data.equipment_name
    item.model = data.model
    item.serial = data.serial
    item.service_content = data.service_content
    item.engineers = engineers

    await record_audit(db, principal.user_id, "SERVICE_ITEM_UPDATE", "ServiceItem", item_id)
    await db.commit()
    return await _load_item(db, item_id)


async def delete_service_item(db: AsyncSession, principal: Principal, item_id: str) -> None:
    item = await _load_item(db, item_id)
    work_order = await get_active_work_order(db, item.work_order_id)
    ensure_can_manage_work_order(principal, work_order)

    item.deleted_at = clock.utcnow()
    await record_audit(db, principal.user_id, "SERVICE_ITEM_DELETE", "ServiceItem", item_id)
    await db.commit()


# Attachments

async def upload_attachment(
    db: AsyncSession,
    storage: LocalBlobStorage,
    principal: Principal,
    item_id: str,
    filename: Optional[str],
    mime_type: Optional[str],
    data: bytes,
) -> ServiceAttachment:
    item = await _load_item(db, item_id)
    work_order = await get_active_work_order(db, item.work_order_id)
    ensure_can_manage_work_order(principal, work_order)
    validate_upload(filename, mime_type, len(data))

    path = await run_in_threadpool(storage.store, data, filename)
    attachment = ServiceAttachment(
        service_item_id=item.id,
        path=path,
        filename=filename,
        mime_type=mime_type,
        size=len(data),
        uploader_id=principal.user_id,
    )
    db.add(attachment)
    try:
        await db.flush()
        await record_audit(db, principal.user_id, "SERVICE_ATTACHMENT_UPLOAD", "ServiceAttachment", attachment.id)
        await db.commit()
    except Exception:
        await run_in_threadpool(storage.delete, path)
        raise
    return attachment


async def _get_attachment(db: AsyncSession, attachment_id: str) -> tuple[ServiceAttachment, ServiceItem]:
    attachment = await db.get(ServiceAttachment, attachment_id)
    item = (
        await db.get(ServiceItem, attachment.service_item_id, populate_existing=True) if attachment else None
    )
    # Attachments of a deleted service item are gone with it
    if not attachment or not item or item.deleted_at is not None:
        raise NotFoundError("Attachment", attachment_id)
    return attachment, item


async def download_attachment(
    db: AsyncSession,
    storage: LocalBlobStorage,
    attachment_id: str,
) -> tuple[ServiceAttachment, bytes]:
    attachment, _ = await _get_attachment(db, attachment_id)
    return attachment, await run_in_threadpool(storage.retrieve, attachment.path)


async def delete_attachment(
    db: AsyncSession,
    storage: LocalBlobStorage,
    principal: Principal,
    attachment_id: str,
) -> None:
    attachment, item = await _get_attachment(db, attachment_id)
    work_order = await get_active_work_order(db, item.work_order_id)
    ensure_can_manage_work_order(principal, work_order)

    path = attachment.path
    await db.delete(attachment)
    await record_audit(db, principal.user_id, "SERVICE_ATTACHMENT_DELETE", "ServiceAttachment", attachment_id)
    await db.commit()
    await run_in_threadpool(storage.delete, path)
