"""
Invoices API - customer invoices and the derived income summary.
"""
from fastapi import APIRouter, status

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal
from shiprepair_erp.schemas.invoice import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoiceListResponse,
)
from shiprepair_erp.schemas.payment import IncomeSummary
from shiprepair_erp.services import income_ledger

router = APIRouter()


@router.get("/work-orders/{work_order_id}/invoices", response_model=InvoiceListResponse)
async def list_invoices(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    invoices = await income_ledger.list_invoices(db, principal, work_order_id)
    return InvoiceListResponse(items=[InvoiceResponse.model_validate(i) for i in invoices])


@router.post(
    "/work-orders/{work_order_id}/invoices",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(work_order_id: str, data: InvoiceCreate, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.create_invoice(db, principal, work_order_id, data)


@router.get("/work-orders/{work_order_id}/income-summary", response_model=IncomeSummary)
async def income_summary(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    """Invoice, receipt and quote totals computed on demand."""
    figures = await income_ledger.get_income_summary(db, principal, work_order_id)
    return IncomeSummary(
        invoice_total=figures.invoice_total,
        receipts_total=figures.receipts_total,
        outstanding=figures.outstanding,
        final_quote_amount=figures.final_quote_amount,
        quote_total=figures.quote_total,
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.get_invoice(db, principal, invoice_id)


@router.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(invoice_id: str, data: InvoiceUpdate, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.update_invoice(db, principal, invoice_id, data)


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str, db: DbSession, principal: CurrentPrincipal):
    """Delete an invoice. Receipts recorded against it are kept and unlinked."""
    await income_ledger.delete_invoice(db, principal, invoice_id)
