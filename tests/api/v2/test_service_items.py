"""
Tests for the service items API: CRUD, engineer assignment and attachments.
"""
import pytest
from sqlalchemy import select

from shiprepair_erp.models.audit_log import AuditLog

from tests.conftest import OPS, OTHER_OPS, FINANCE, ADMIN, ENGINEER, ENGINEER_ID, FINANCE_ID
from tests.factories import ServiceItemPayloadFactory

PDF = ("thruster-report.pdf", b"%PDF-1.4 thruster overhaul", "application/pdf")


def items_url(work_order_id: str) -> str:
    return f"/api/v2/work-orders/{work_order_id}/service-items"


async def add_item(client, work_order_id: str, headers=OPS, **overrides) -> dict:
    response = await client.post(
        items_url(work_order_id), json=ServiceItemPayloadFactory(**overrides), headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def upload(client, item_id: str, file=PDF, headers=OPS):
    return await client.post(f"/api/v2/service-items/{item_id}/attachments", files={"file": file}, headers=headers)


@pytest.mark.asyncio
class TestCreateServiceItem:
    """Tests for POST /work-orders/{id}/service-items."""

    async def test_create_with_engineer(self, client, work_order, test_db):
        wo_id = work_order.id
        response = await client.post(
            items_url(wo_id),
            json=ServiceItemPayloadFactory(
                equipment_name="  Bow thruster ", serial="", status="IN_PROGRESS",
                assigned_engineer_ids=[ENGINEER_ID, ENGINEER_ID],
            ),
            headers=OPS,
        )

        assert response.status_code == 201
        item = response.json()
        assert item["work_order_id"] == wo_id
        assert item["equipment_name"] == "Bow thruster"
        assert item["serial"] is None
        assert item["status"] == "IN_PROGRESS"
        assert [e["id"] for e in item["assigned_engineers"]] == [ENGINEER_ID]
        assert item["assigned_engineers"][0]["name"] == "Erik Engineer"
        assert item["attachments"] == []

        result = await test_db.execute(select(AuditLog).where(AuditLog.entity_id == item["id"]))
        assert [log.action for log in result.scalars().all()] == ["SERVICE_ITEM_CREATE"]

    async def test_in_progress_needs_engineer(self, client, work_order):
        payload = ServiceItemPayloadFactory(status="IN_PROGRESS", assigned_engineer_ids=[])
        response = await client.post(items_url(work_order.id), json=payload, headers=OPS)
        assert response.status_code == 422

    async def test_non_engineer_assignment_rejected(self, client, work_order):
        payload = ServiceItemPayloadFactory(assigned_engineer_ids=[ENGINEER_ID, FINANCE_ID])
        response = await client.post(items_url(work_order.id), json=payload, headers=OPS)
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "assigned_engineer_ids"

    async def test_unknown_status_rejected(self, client, work_order):
        payload = ServiceItemPayloadFactory(status="ON_HOLD")
        response = await client.post(items_url(work_order.id), json=payload, headers=OPS)
        assert response.status_code == 422

    async def test_finance_forbidden(self, client, work_order):
        response = await client.post(items_url(work_order.id), json=ServiceItemPayloadFactory(), headers=FINANCE)
        assert response.status_code == 403

    async def test_non_owner_ops_forbidden(self, client, work_order):
        response = await client.post(items_url(work_order.id), json=ServiceItemPayloadFactory(), headers=OTHER_OPS)
        assert response.status_code == 403

    async def test_admin_allowed(self, client, work_order):
        item = await add_item(client, work_order.id, headers=ADMIN)
        assert item["status"] == "PENDING"

    async def test_unknown_work_order(self, client):
        response = await client.post(items_url("missing"), json=ServiceItemPayloadFactory(), headers=OPS)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestListServiceItems:
    """Tests for GET /work-orders/{id}/service-items and /service-items/{id}."""

    async def test_filters(self, client, work_order):
        wo_id = work_order.id
        thruster = await add_item(
            client, wo_id, equipment_name="Bow thruster", status="IN_PROGRESS", assigned_engineer_ids=[ENGINEER_ID],
        )
        pump = await add_item(client, wo_id, equipment_name="Ballast pump", status="COMPLETED")

        response = await client.get(items_url(wo_id), headers=ENGINEER)
        assert response.status_code == 200
        assert {i["id"] for i in response.json()["items"]} == {thruster["id"], pump["id"]}

        response = await client.get(items_url(wo_id), params={"status": "COMPLETED"}, headers=OPS)
        assert [i["id"] for i in response.json()["items"]] == [pump["id"]]

        response = await client.get(items_url(wo_id), params={"engineer_id": ENGINEER_ID}, headers=OPS)
        assert [i["id"] for i in response.json()["items"]] == [thruster["id"]]

        response = await client.get(items_url(wo_id), params={"search": "pump"}, headers=FINANCE)
        assert [i["id"] for i in response.json()["items"]] == [pump["id"]]

    async def test_unknown_status_filter_rejected(self, client, work_order):
        response = await client.get(items_url(work_order.id), params={"status": "ON_HOLD"}, headers=OPS)
        assert response.status_code == 422

    async def test_get_one(self, client, work_order):
        item = await add_item(client, work_order.id)
        response = await client.get(f"/api/v2/service-items/{item['id']}", headers=ENGINEER)
        assert response.status_code == 200
        assert response.json()["equipment_name"] == item["equipment_name"]

    async def test_unknown_work_order(self, client):
        response = await client.get(items_url("missing"), headers=OPS)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestUpdateDeleteServiceItem:
    """Tests for PUT and DELETE /service-items/{id}."""

    async def test_update_replaces_engineers(self, client, work_order):
        item = await add_item(client, work_order.id, status="IN_PROGRESS", assigned_engineer_ids=[ENGINEER_ID])

        payload = ServiceItemPayloadFactory(
            equipment_name="Steering gear", status="COMPLETED", assigned_engineer_ids=[],
        )
        response = await client.put(f"/api/v2/service-items/{item['id']}", json=payload, headers=OPS)
        assert response.status_code == 200
        updated = response.json()
        assert updated["equipment_name"] == "Steering gear"
        assert updated["status"] == "COMPLETED"
        assert updated["assigned_engineers"] == []

    async def test_update_to_in_progress_needs_engineer(self, client, work_order):
        item = await add_item(client, work_order.id)
        payload = ServiceItemPayloadFactory(status="IN_PROGRESS")
        response = await client.put(f"/api/v2/service-items/{item['id']}", json=payload, headers=OPS)
        assert response.status_code == 422

    async def test_non_owner_ops_cannot_update(self, client, work_order):
        item = await add_item(client, work_order.id)
        response = await client.put(
            f"/api/v2/service-items/{item['id']}", json=ServiceItemPayloadFactory(), headers=OTHER_OPS
        )
        assert response.status_code == 403

    async def test_delete_is_soft(self, client, work_order, test_db):
        wo_id = work_order.id
        item = await add_item(client, wo_id)

        response = await client.delete(f"/api/v2/service-items/{item['id']}", headers=OPS)
        assert response.status_code == 204

        response = await client.get(f"/api/v2/service-items/{item['id']}", headers=OPS)
        assert response.status_code == 404
        response = await client.get(items_url(wo_id), headers=OPS)
        assert response.json()["items"] == []

        result = await test_db.execute(select(AuditLog.action).where(AuditLog.entity_id == item["id"]))
        assert "SERVICE_ITEM_DELETE" in result.scalars().all()

    async def test_engineer_cannot_delete(self, client, work_order):
        item = await add_item(client, work_order.id)
        response = await client.delete(f"/api/v2/service-items/{item['id']}", headers=ENGINEER)
        assert response.status_code == 403


@pytest.mark.asyncio
class TestServiceAttachments:
    """Tests for service item attachment upload, download and delete."""

    async def test_upload_download_delete(self, client, work_order, blob_storage):
        item = await add_item(client, work_order.id)

        response = await upload(client, item["id"])
        assert response.status_code == 201
        attachment = response.json()
        assert attachment["service_item_id"] == item["id"]
        assert attachment["size"] == len(PDF[1])

        response = await client.get(f"/api/v2/service-items/{item['id']}", headers=OPS)
        assert [a["filename"] for a in response.json()["attachments"]] == ["thruster-report.pdf"]

        response = await client.get(f"/api/v2/service-attachments/{attachment['id']}/download", headers=ENGINEER)
        assert response.status_code == 200
        assert response.content == PDF[1]
        assert "thruster-report.pdf" in response.headers["content-disposition"]

        response = await client.delete(f"/api/v2/service-attachments/{attachment['id']}", headers=OPS)
        assert response.status_code == 204
        assert not (blob_storage.base_dir / attachment["path"]).exists()

        response = await client.get(f"/api/v2/service-attachments/{attachment['id']}/download", headers=OPS)
        assert response.status_code == 404

    async def test_unsupported_mime_rejected(self, client, work_order):
        item = await add_item(client, work_order.id)
        response = await upload(client, item["id"], file=("run.sh", b"#!/bin/sh", "application/x-sh"))
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "file"

    async def test_non_owner_ops_forbidden(self, client, work_order):
        item = await add_item(client, work_order.id)
        response = await upload(client, item["id"], headers=OTHER_OPS)
        assert response.status_code == 403

    async def test_attachment_of_deleted_item_gone(self, client, work_order):
        item = await add_item(client, work_order.id)
        attachment = (await upload(client, item["id"])).json()
        await client.delete(f"/api/v2/service-items/{item['id']}", headers=OPS)

        response = await client.get(f"/api/v2/service-attachments/{attachment['id']}/download", headers=OPS)
        assert response.status_code == 404
        response = await client.delete(f"/api/v2/service-attachments/{attachment['id']}", headers=OPS)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestEngineers:
    """Tests for GET /users/engineers."""

    async def test_lists_engineer_users_only(self, client):
        response = await client.get("/api/v2/users/engineers", headers=FINANCE)
        assert response.status_code == 200
        assert response.json()["engineers"] == [
            {"id": ENGINEER_ID, "name": "Erik Engineer", "email": "engineer@shipyard.test", "role": "ENGINEER"}
        ]

    async def test_requires_auth(self, client):
        response = await client.get("/api/v2/users/engineers")
        assert response.status_code == 401
