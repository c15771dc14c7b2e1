"""
Tests for the fire-and-forget audit and notification sinks.
"""
import pytest
from unittest.mock import patch
from sqlalchemy import select

from shiprepair_erp.models.audit_log import AuditLog
from shiprepair_erp.models.notification import Notification
from shiprepair_erp.models.work_order import WorkOrder
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.notification_service import notify, resolve_admin_recipients

from tests.conftest import OPS_ID


@pytest.mark.asyncio
class TestAuditSink:
    async def test_records_entry(self, test_db, work_order):
        wo_id = work_order.id
        await record_audit(test_db, OPS_ID, "WORK_ORDER_UPDATE", "WorkOrder", wo_id)
        await test_db.commit()

        rows = (await test_db.execute(select(AuditLog).where(AuditLog.entity_id == wo_id))).scalars().all()
        assert [r.action for r in rows] == ["WORK_ORDER_UPDATE"]

    async def test_failure_does_not_break_primary_write(self, test_db, work_order):
        """A failing audit insert is swallowed and the staged change still commits."""
        wo_id = work_order.id
        work_order.po = "PO-778"

        with patch("shiprepair_erp.services.audit_service.AuditLog", side_effect=RuntimeError("audit down")):
            await record_audit(test_db, OPS_ID, "WORK_ORDER_UPDATE", "WorkOrder", wo_id)
        await test_db.commit()

        stored = await test_db.get(WorkOrder, wo_id, populate_existing=True)
        assert stored.po == "PO-778"
        assert (await test_db.execute(select(AuditLog))).scalars().all() == []


@pytest.mark.asyncio
class TestNotificationSink:
    async def test_failure_is_swallowed(self, test_db, work_order):
        wo_id = work_order.id
        with patch(
            "shiprepair_erp.services.notification_service.Notification",
            side_effect=RuntimeError("mailer down"),
        ):
            await notify(test_db, "TEST", "a@b.test", "subject", "body", wo_id, OPS_ID)
        await test_db.commit()
        assert (await test_db.execute(select(Notification))).scalars().all() == []

    async def test_admin_recipients_from_users(self, test_db, test_users):
        assert await resolve_admin_recipients(test_db) == ["admin@shipyard.test"]

    async def test_fallback_recipient_without_admins(self, test_db):
        from shiprepair_erp.config import settings
        assert await resolve_admin_recipients(test_db) == [settings.FALLBACK_ADMIN_EMAIL]

    async def test_configured_recipients_win(self, test_db, test_users):
        with patch("shiprepair_erp.services.notification_service.settings") as mock_settings:
            mock_settings.DELETE_NOTIFICATION_RECIPIENTS = ["ops-lead@shipyard.test"]
            assert await resolve_admin_recipients(test_db) == ["ops-lead@shipyard.test"]
