"""Audit sink.

Audit rows ride along with the primary write inside a SAVEPOINT, so a failing
audit insert is rolled back on its own and never takes the primary operation
down with it. Call after the primary changes are staged and before commit.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def record_audit(
    db: AsyncSession,
    actor_id: str,
    action: str,
    entity_type: str,
    entity_id: str,
) -> None:
    """Fire-and-forget audit entry."""
    # Primary write errors must surface, so flush them before the guarded block
    await db.flush()
    try:
        async with db.begin_nested():
            db.add(
                AuditLog(
                    actor_id=actor_id,
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                )
            )
    except Exception as e:
        logger.warning(
            f"Audit record failed for {action}: {type(e).__name__}: {e}",
            extra={"actor_id": actor_id, "entity_type": entity_type, "entity_id": entity_id},
        )
