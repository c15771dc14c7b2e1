"""
Payments API - receipts of money against a work order.
"""
from fastapi import APIRouter, status

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal
from shiprepair_erp.schemas.payment import (
    PaymentCreate,
    PaymentUpdate,
    PaymentResponse,
    PaymentListResponse,
)
from shiprepair_erp.services import income_ledger

router = APIRouter()


@router.get("/work-orders/{work_order_id}/payments", response_model=PaymentListResponse)
async def list_payments(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    payments = await income_ledger.list_payments(db, principal, work_order_id)
    return PaymentListResponse(items=[PaymentResponse.model_validate(p) for p in payments])


@router.post(
    "/work-orders/{work_order_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(work_order_id: str, data: PaymentCreate, db: DbSession, principal: CurrentPrincipal):
    """Record a payment receipt, optionally against one of the work order's invoices."""
    return await income_ledger.create_payment(db, principal, work_order_id, data)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.get_payment(db, principal, payment_id)


@router.patch("/payments/{payment_id}", response_model=PaymentResponse)
async def update_payment(payment_id: str, data: PaymentUpdate, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.update_payment(db, principal, payment_id, data)


@router.delete("/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(payment_id: str, db: DbSession, principal: CurrentPrincipal):
    await income_ledger.delete_payment(db, principal, payment_id)
