"""
Tests for the work orders API endpoints.
"""
import re
import pytest
from datetime import date, timedelta
from sqlalchemy import select

from shiprepair_erp.models.audit_log import AuditLog
from shiprepair_erp.models.notification import Notification
from shiprepair_erp.services.notification_service import WORK_ORDER_DELETED

from tests.conftest import OPS, OTHER_OPS, FINANCE, ADMIN, ENGINEER, OPS_ID
from tests.factories import WorkOrderPayloadFactory, ServiceItemPayloadFactory

BASE = "/api/v2/work-orders"


async def create_and_generate(client, **overrides) -> dict:
    response = await client.post(BASE, json=WorkOrderPayloadFactory(**overrides), headers=OPS)
    assert response.status_code == 201
    response = await client.post(f"{BASE}/{response.json()['id']}/generate", headers=OPS)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
class TestCreateWorkOrder:
    """Tests for POST /work-orders."""

    async def test_create_starts_as_draft(self, client, test_db):
        payload = WorkOrderPayloadFactory(vessel_name="MV Aurora")
        response = await client.post(BASE, json=payload, headers=OPS)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "DRAFT"
        assert data["internal_no"] is None
        assert data["created_by_id"] == OPS_ID
        assert data["vessel_name"] == "MV Aurora"

        audit = (await test_db.execute(select(AuditLog).where(AuditLog.entity_id == data["id"]))).scalars().all()
        assert [a.action for a in audit] == ["WORK_ORDER_CREATE"]

    async def test_finance_cannot_create(self, client):
        response = await client.post(BASE, json=WorkOrderPayloadFactory(), headers=FINANCE)
        assert response.status_code == 403
        assert response.json()["code"] == "AUTH_002"

    async def test_start_after_end_rejected(self, client):
        payload = WorkOrderPayloadFactory(start_date="2026-05-10", end_date="2026-05-01")
        response = await client.post(BASE, json=payload, headers=OPS)
        assert response.status_code == 422
        assert response.json()["code"] == "VAL_001"

    async def test_missing_required_field_rejected(self, client):
        payload = WorkOrderPayloadFactory()
        del payload["imo"]
        response = await client.post(BASE, json=payload, headers=OPS)
        assert response.status_code == 422


@pytest.mark.asyncio
class TestGenerateNumber:
    """Tests for POST /work-orders/{id}/generate."""

    async def test_number_format_and_status(self, client):
        data = await create_and_generate(client, operating_company="Wormos")
        today = date.today().strftime("%Y%m%d")

        assert data["internal_no"] == f"XQ-{today}-001"
        # Factory schedules the job a few days out
        assert data["status"] == "PENDING_SERVICE"

    async def test_sequence_increments_per_prefix_and_day(self, client):
        first = await create_and_generate(client, operating_company="iShip")
        second = await create_and_generate(client, operating_company="iShip")
        other = await create_and_generate(client, operating_company="Harbor Marine")

        assert first["internal_no"].startswith("KD-")
        assert first["internal_no"].endswith("-001")
        assert second["internal_no"].endswith("-002")
        assert re.match(r"^AX-\d{8}-001$", other["internal_no"])

    async def test_regenerate_conflicts(self, client):
        data = await create_and_generate(client)
        response = await client.post(f"{BASE}/{data['id']}/generate", headers=OPS)
        assert response.status_code == 409
        assert response.json()["code"] == "RES_003"

    async def test_other_ops_cannot_generate(self, client, work_order):
        response = await client.post(f"{BASE}/{work_order.id}/generate", headers=OTHER_OPS)
        assert response.status_code == 403


@pytest.mark.asyncio
class TestUpdateWorkOrder:
    """Tests for PATCH /work-orders/{id}."""

    async def test_owner_updates(self, client, work_order):
        response = await client.patch(f"{BASE}/{work_order.id}", json={"po": "PO-1234"}, headers=OPS)
        assert response.status_code == 200
        assert response.json()["po"] == "PO-1234"

    async def test_non_owner_ops_forbidden(self, client, work_order):
        response = await client.patch(f"{BASE}/{work_order.id}", json={"po": "PO-1"}, headers=OTHER_OPS)
        assert response.status_code == 403

    async def test_finance_cannot_edit_record(self, client, work_order):
        response = await client.patch(f"{BASE}/{work_order.id}", json={"po": "PO-1"}, headers=FINANCE)
        assert response.status_code == 403

    async def test_required_field_cannot_be_cleared(self, client, work_order):
        response = await client.patch(f"{BASE}/{work_order.id}", json={"vessel_name": None}, headers=OPS)
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "vessel_name"

    async def test_merged_window_validated(self, client, work_order):
        late_start = (work_order.end_date + timedelta(days=1)).isoformat()
        response = await client.patch(f"{BASE}/{work_order.id}", json={"start_date": late_start}, headers=OPS)
        assert response.status_code == 422

    async def test_schedule_change_rederives_status(self, client):
        data = await create_and_generate(client)
        today = date.today()
        response = await client.patch(
            f"{BASE}/{data['id']}",
            json={"start_date": (today - timedelta(days=1)).isoformat()},
            headers=OPS,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "IN_SERVICE"


@pytest.mark.asyncio
class TestDeleteWorkOrder:
    """Tests for DELETE /work-orders/{id}."""

    async def test_draft_deleted_without_reason(self, client, work_order):
        wo_id = work_order.id
        response = await client.delete(f"{BASE}/{wo_id}", headers=OPS)
        assert response.status_code == 204

        response = await client.get(f"{BASE}/{wo_id}", headers=OPS)
        assert response.status_code == 404

    async def test_generated_requires_reason(self, client):
        data = await create_and_generate(client)
        response = await client.request("DELETE", f"{BASE}/{data['id']}", json={"reason": "  "}, headers=OPS)
        assert response.status_code == 409

    async def test_generated_delete_notifies_admins(self, client, test_db):
        data = await create_and_generate(client)
        response = await client.request(
            "DELETE", f"{BASE}/{data['id']}", json={"reason": "Customer cancelled"}, headers=OPS
        )
        assert response.status_code == 204

        notices = (
            await test_db.execute(select(Notification).where(Notification.related_work_order_id == data["id"]))
        ).scalars().all()
        assert len(notices) == 1
        notice = notices[0]
        assert notice.type == WORK_ORDER_DELETED
        assert notice.recipient == "admin@shipyard.test"
        assert notice.cc == "ops@shipyard.test"
        assert notice.subject == f"Work Order Deleted: {data['internal_no']}"
        assert "Customer cancelled" in notice.body

    async def test_deleted_hidden_from_list(self, client, work_order):
        wo_id = work_order.id
        await client.delete(f"{BASE}/{wo_id}", headers=ADMIN)
        response = await client.get(BASE, headers=ADMIN)
        assert wo_id not in [item["id"] for item in response.json()["items"]]


@pytest.mark.asyncio
class TestPendingSettlement:
    async def test_requires_internal_number(self, client, work_order):
        response = await client.post(f"{BASE}/{work_order.id}/pending-settlement", headers=OPS)
        assert response.status_code == 409

    async def test_marks_and_sticks(self, client):
        data = await create_and_generate(client)
        response = await client.post(f"{BASE}/{data['id']}/pending-settlement", headers=OPS)
        assert response.status_code == 200
        assert response.json()["status"] == "PENDING_SETTLEMENT"

        # Listing re-derives statuses but leaves the manual stage alone
        response = await client.get(BASE, params={"status": "PENDING_SETTLEMENT"}, headers=OPS)
        assert [item["id"] for item in response.json()["items"]] == [data["id"]]


@pytest.mark.asyncio
class TestListWorkOrders:
    """Tests for GET /work-orders."""

    async def test_search_and_filters(self, client, make_work_order):
        await make_work_order(vessel_name="MV Kestrel", operating_company="iShip")
        await make_work_order(vessel_name="MV Osprey", operating_company="Wormos")

        response = await client.get(BASE, params={"search": "kestrel"}, headers=ENGINEER)
        assert response.status_code == 200
        assert [item["vessel_name"] for item in response.json()["items"]] == ["MV Kestrel"]

        response = await client.get(BASE, params={"operating_company": "Wormos"}, headers=ENGINEER)
        assert response.json()["total"] == 1

    async def test_pagination(self, client, make_work_order):
        for i in range(5):
            await make_work_order(vessel_name=f"MV Page {i}")
        response = await client.get(BASE, params={"page": 2, "page_size": 2}, headers=OPS)
        data = response.json()
        assert data["total"] == 5
        assert data["page"] == 2
        assert len(data["items"]) == 2

    async def test_unknown_status_rejected(self, client):
        response = await client.get(BASE, params={"status": "SAILING"}, headers=OPS)
        assert response.status_code == 422

    async def test_stored_status_is_refreshed(self, client, make_work_order):
        today = date.today()
        await make_work_order(
            internal_no="XQ-20200101-001",
            status="PENDING_SERVICE",
            start_date=today - timedelta(days=10),
            end_date=today - timedelta(days=1),
        )
        response = await client.get(BASE, params={"status": "COMPLETED"}, headers=OPS)
        assert response.json()["total"] == 1


@pytest.mark.asyncio
class TestDashboard:
    """Tests for GET /work-orders/stats and /alerts."""

    async def test_stats(self, client, make_work_order):
        today = date.today()
        await make_work_order(imo="1000001", city="Rotterdam")
        await make_work_order(
            imo="1000002", city="Rotterdam", internal_no="XQ-20200101-001", responsible_engineer_name="Lars",
        )
        await make_work_order(
            imo="1000002", city="Hamburg", internal_no="XQ-20200101-002",
            start_date=today - timedelta(days=9), end_date=today - timedelta(days=3),
        )
        await make_work_order(
            imo="1000003", city="Hamburg", internal_no="XQ-20200101-003",
            start_date=today + timedelta(days=2), end_date=today + timedelta(days=4),
        )

        response = await client.get(f"{BASE}/stats", headers=ENGINEER)
        assert response.status_code == 200
        stats = response.json()
        assert stats["total_work_orders"] == 4
        assert stats["total_vessels"] == 3
        assert stats["draft"] == 1
        assert stats["in_service"] == 1
        assert stats["completed"] == 1
        assert stats["pending_service"] == 1
        assert stats["pending_settlement"] == 0
        assert stats["engineer_load"] == [{"name": "Lars", "count": 1}]
        assert {r["city"]: r["count"] for r in stats["region_distribution"]} == {"Rotterdam": 2, "Hamburg": 2}

    async def test_alerts(self, client, make_work_order):
        today = date.today()
        overdue = await make_work_order(
            start_date=today - timedelta(days=9), end_date=today - timedelta(days=3),
        )
        soon = await make_work_order(
            internal_no="KD-20200101-001",
            start_date=today + timedelta(days=2), end_date=today + timedelta(days=4),
        )
        for i in range(4):
            await make_work_order(internal_no=f"KD-20200101-10{i}", responsible_engineer_name="Mina")
        overdue_id, soon_id = overdue.id, soon.id

        response = await client.get(f"{BASE}/alerts", headers=OPS)
        assert response.status_code == 200
        alerts = response.json()
        assert [a["id"] for a in alerts["overdue"]] == [overdue_id]
        assert [a["id"] for a in alerts["starting_soon"]] == [soon_id]
        assert alerts["engineer_load"] == [{"name": "Mina", "count": 4}]
        assert alerts["service_status_mismatches"] == []

    async def test_completed_service_item_on_running_work_order(self, client, make_work_order):
        running = await make_work_order(internal_no="KD-20200101-201")
        quiet = await make_work_order(internal_no="KD-20200101-202")
        draft = await make_work_order()
        running_id, quiet_id, draft_id = running.id, quiet.id, draft.id

        for wo_id, status in ((running_id, "COMPLETED"), (quiet_id, "PENDING"), (draft_id, "COMPLETED")):
            response = await client.post(
                f"{BASE}/{wo_id}/service-items", json=ServiceItemPayloadFactory(status=status), headers=OPS
            )
            assert response.status_code == 201

        alerts = (await client.get(f"{BASE}/alerts", headers=ENGINEER)).json()
        assert alerts["service_status_mismatches"] == [
            {
                "work_order_id": running_id,
                "internal_no": "KD-20200101-201",
                "message": "Service items show completed but work order not completed",
            }
        ]


@pytest.mark.asyncio
class TestExportPrint:
    async def test_engineer_cannot_export(self, client, work_order):
        response = await client.get(f"{BASE}/{work_order.id}/export", headers=ENGINEER)
        assert response.status_code == 403

    async def test_export_and_print_placeholders(self, client, work_order):
        wo_id = work_order.id
        response = await client.get(f"{BASE}/{wo_id}/export", headers=FINANCE)
        assert response.status_code == 200
        assert response.json()["message"] == f"Export placeholder for work order {wo_id}"

        response = await client.get(f"{BASE}/{wo_id}/print", headers=OPS)
        assert response.json()["message"] == f"Print placeholder for work order {wo_id}"
