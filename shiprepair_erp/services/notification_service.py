"""Notification sink.

Notifications are written to an outbox table; delivery happens elsewhere.
Like the audit sink, every write is isolated in a SAVEPOINT and failures are
logged and swallowed.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.config import settings
from shiprepair_erp.models.notification import Notification
from shiprepair_erp.models.user import User
from shiprepair_erp.models.work_order import WorkOrder
from shiprepair_erp.security.rbac import Role

logger = logging.getLogger(__name__)

WORK_ORDER_DELETED = "DELETE_WORK_ORDER_EMAIL_SIMULATION"


async def notify(
    db: AsyncSession,
    notification_type: str,
    recipient: str,
    subject: str,
    body: str,
    related_work_order_id: Optional[str],
    created_by_id: str,
    cc: Optional[str] = None,
) -> None:
    """Fire-and-forget notification."""
    await db.flush()
    try:
        async with db.begin_nested():
            db.add(
                Notification(
                    type=notification_type,
                    recipient=recipient,
                    cc=cc,
                    subject=subject,
                    body=body,
                    related_work_order_id=related_work_order_id,
                    created_by_id=created_by_id,
                )
            )
    except Exception as e:
        logger.warning(
            f"Notification {notification_type} to {recipient} failed: {type(e).__name__}: {e}",
            extra={"related_work_order_id": related_work_order_id},
        )


async def resolve_admin_recipients(db: AsyncSession) -> list[str]:
    """Configured recipients, else every ADMIN user, else the fallback address."""
    if settings.DELETE_NOTIFICATION_RECIPIENTS:
        return list(settings.DELETE_NOTIFICATION_RECIPIENTS)

    result = await db.execute(
        select(User.email).where(User.role == Role.ADMIN.value).order_by(User.email)
    )
    emails = [email for email in result.scalars().all() if email]
    return emails or [settings.FALLBACK_ADMIN_EMAIL]


async def notify_work_order_deleted(
    db: AsyncSession,
    work_order: WorkOrder,
    actor_id: str,
    reason: Optional[str],
) -> int:
    """Fan out the deletion notice to every admin recipient. Returns the count queued."""
    label = work_order.internal_no or work_order.id
    try:
        recipients = await resolve_admin_recipients(db)
        creator = await db.get(User, work_order.created_by_id)
    except Exception as e:
        logger.warning(f"Could not resolve deletion notice recipients: {type(e).__name__}: {e}")
        return 0

    for recipient in recipients:
        await notify(
            db,
            notification_type=WORK_ORDER_DELETED,
            recipient=recipient,
            cc=creator.email if creator else None,
            subject=f"Work Order Deleted: {label}",
            body=f"Work Order {label} was deleted. Reason: {reason or 'N/A'}.",
            related_work_order_id=work_order.id,
            created_by_id=actor_id,
        )
    logger.info(
        f"Queued {len(recipients)} deletion notice(s) for work order {label}",
        extra={"work_order_id": work_order.id},
    )
    return len(recipients)
