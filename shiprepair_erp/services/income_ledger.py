"""Income ledger service: quotes, invoices and payment receipts.

At most one quote per work order is final. Promoting a quote demotes every
other final quote in the same transaction, and a partial unique index turns a
lost race between two promotions into a ConflictError.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.exceptions import NotFoundError, ConflictError, ValidationError
from shiprepair_erp.models.invoice import Invoice, InvoiceStatus
from shiprepair_erp.models.payment import PaymentReceipt
from shiprepair_erp.models.quote import Quote
from shiprepair_erp.models.work_order import WorkOrder
from shiprepair_erp.schemas.invoice import InvoiceCreate, InvoiceUpdate
from shiprepair_erp.schemas.payment import PaymentCreate, PaymentUpdate
from shiprepair_erp.schemas.quote import QuoteCreate, QuoteUpdate
from shiprepair_erp.security.rbac import Principal, ensure_can_edit_work_order, ensure_can_view_financials
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.cost_ledger import ZERO, quantize_money
from shiprepair_erp.services.work_order_service import get_active_work_order

logger = logging.getLogger(__name__)

# Columns a PATCH may not null out
NON_NULLABLE = {
    "quote": {"amount", "currency", "is_final"},
    "invoice": {"invoice_no", "amount", "currency", "issue_date", "status"},
    "payment": {"receipt_no", "amount", "currency", "date", "method"},
}

FINAL_QUOTE_RACE = "Another final quote was set concurrently"


@dataclass
class IncomeFigures:
    invoice_total: Decimal = ZERO
    receipts_total: Decimal = ZERO
    outstanding: Decimal = ZERO
    final_quote_amount: Decimal = ZERO
    quote_total: Decimal = ZERO
    has_overdue_invoice: bool = False
    quotes: list[Quote] = field(default_factory=list)
    invoices: list[Invoice] = field(default_factory=list)
    payments: list[PaymentReceipt] = field(default_factory=list)


def summarize_income(
    quotes: list[Quote],
    invoices: list[Invoice],
    payments: list[PaymentReceipt],
) -> IncomeFigures:
    invoice_total = quantize_money(sum((Decimal(i.amount) for i in invoices), ZERO))
    receipts_total = quantize_money(sum((Decimal(p.amount) for p in payments), ZERO))
    final = next((q for q in quotes if q.is_final), None)
    return IncomeFigures(
        invoice_total=invoice_total,
        receipts_total=receipts_total,
        outstanding=quantize_money(invoice_total - receipts_total),
        final_quote_amount=quantize_money(final.amount) if final else ZERO,
        quote_total=quantize_money(sum((Decimal(q.amount) for q in quotes), ZERO)),
        has_overdue_invoice=any(i.status == InvoiceStatus.OVERDUE.value for i in invoices),
        quotes=quotes,
        invoices=invoices,
        payments=payments,
    )


async def _all(db: AsyncSession, model, work_order_id: str, *order_by) -> list:
    result = await db.execute(
        select(model)
        .where(model.work_order_id == work_order_id)
        .order_by(*order_by)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def load_quotes(db: AsyncSession, work_order_id: str) -> list[Quote]:
    return await _all(db, Quote, work_order_id, Quote.created_at, Quote.id)


async def load_invoices(db: AsyncSession, work_order_id: str) -> list[Invoice]:
    return await _all(db, Invoice, work_order_id, Invoice.issue_date, Invoice.created_at, Invoice.id)


async def load_payments(db: AsyncSession, work_order_id: str) -> list[PaymentReceipt]:
    return await _all(db, PaymentReceipt, work_order_id, PaymentReceipt.date, PaymentReceipt.created_at, PaymentReceipt.id)


async def load_income(db: AsyncSession, work_order_id: str) -> IncomeFigures:
    return summarize_income(
        await load_quotes(db, work_order_id),
        await load_invoices(db, work_order_id),
        await load_payments(db, work_order_id),
    )


async def get_income_summary(db: AsyncSession, principal: Principal, work_order_id: str) -> IncomeFigures:
    work_order = await _viewable_work_order(db, principal, work_order_id)
    return await load_income(db, work_order.id)


async def _viewable_work_order(db: AsyncSession, principal: Principal, work_order_id: str) -> WorkOrder:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_view_financials(principal, work_order)
    return work_order


async def _editable_work_order(db: AsyncSession, principal: Principal, work_order_id: str) -> WorkOrder:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_edit_work_order(principal, work_order)
    return work_order


async def _get_or_404(db: AsyncSession, model, entity_id: str, label: str):
    entity = await db.get(model, entity_id, populate_existing=True)
    if not entity:
        raise NotFoundError(label, entity_id)
    return entity


def _patch_changes(data, kind: str) -> dict:
    changes = data.model_dump(exclude_unset=True)
    cleared = sorted(k for k, v in changes.items() if v is None and k in NON_NULLABLE[kind])
    if cleared:
        raise ValidationError(
            "Required fields cannot be cleared",
            errors=[{"field": name, "message": f"{name} is required"} for name in cleared],
        )
    return changes


# Quotes

async def _clear_final_quotes(db: AsyncSession, work_order_id: str, keep_id: Optional[str] = None) -> None:
    stmt = update(Quote).where(Quote.work_order_id == work_order_id, Quote.is_final.is_(True))
    if keep_id:
        stmt = stmt.where(Quote.id != keep_id)
    await db.execute(stmt.values(is_final=False).execution_options(synchronize_session="fetch"))


async def list_quotes(db: AsyncSession, principal: Principal, work_order_id: str) -> list[Quote]:
    work_order = await _viewable_work_order(db, principal, work_order_id)
    return await load_quotes(db, work_order.id)


async def get_quote(db: AsyncSession, principal: Principal, quote_id: str) -> Quote:
    quote = await _get_or_404(db, Quote, quote_id, "Quote")
    await _viewable_work_order(db, principal, quote.work_order_id)
    return quote


async def create_quote(db: AsyncSession, principal: Principal, work_order_id: str, data: QuoteCreate) -> Quote:
    work_order = await _editable_work_order(db, principal, work_order_id)

    if data.is_final:
        await _clear_final_quotes(db, work_order.id)

    quote = Quote(
        work_order_id=work_order.id,
        amount=data.amount,
        currency=data.currency.upper(),
        validity_date=data.validity_date,
        notes=data.notes,
        is_final=data.is_final,
        created_by_id=principal.user_id,
    )
    db.add(quote)
    try:
        await db.flush()
        await record_audit(db, principal.user_id, "QUOTE_CREATE", "Quote", quote.id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(FINAL_QUOTE_RACE)
    return quote


async def update_quote(db: AsyncSession, principal: Principal, quote_id: str, data: QuoteUpdate) -> Quote:
    quote = await _get_or_404(db, Quote, quote_id, "Quote")
    await _editable_work_order(db, principal, quote.work_order_id)
    changes = _patch_changes(data, "quote")

    # Demote first so the flush of this quote never sees two finals
    if changes.get("is_final"):
        await _clear_final_quotes(db, quote.work_order_id, keep_id=quote.id)
    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()

    for name, value in changes.items():
        setattr(quote, name, value)
    try:
        await record_audit(db, principal.user_id, "QUOTE_UPDATE", "Quote", quote.id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(FINAL_QUOTE_RACE)
    return quote


async def delete_quote(db: AsyncSession, principal: Principal, quote_id: str) -> None:
    quote = await _get_or_404(db, Quote, quote_id, "Quote")
    await _editable_work_order(db, principal, quote.work_order_id)
    await db.delete(quote)
    await record_audit(db, principal.user_id, "QUOTE_DELETE", "Quote", quote_id)
    await db.commit()


# Invoices

async def list_invoices(db: AsyncSession, principal: Principal, work_order_id: str) -> list[Invoice]:
    work_order = await _viewable_work_order(db, principal, work_order_id)
    return await load_invoices(db, work_order.id)


async def get_invoice(db: AsyncSession, principal: Principal, invoice_id: str) -> Invoice:
    invoice = await _get_or_404(db, Invoice, invoice_id, "Invoice")
    await _viewable_work_order(db, principal, invoice.work_order_id)
    return invoice


async def create_invoice(db: AsyncSession, principal: Principal, work_order_id: str, data: InvoiceCreate) -> Invoice:
    work_order = await _editable_work_order(db, principal, work_order_id)
    invoice = Invoice(
        work_order_id=work_order.id,
        invoice_no=data.invoice_no.strip(),
        amount=data.amount,
        currency=data.currency.upper(),
        issue_date=data.issue_date,
        due_date=data.due_date,
        status=data.status.value,
        notes=data.notes,
        created_by_id=principal.user_id,
    )
    db.add(invoice)
    await db.flush()
    await record_audit(db, principal.user_id, "INVOICE_CREATE", "Invoice", invoice.id)
    await db.commit()

    logger.info(
        f"Invoice {invoice.invoice_no} recorded: {invoice.amount} {invoice.currency}",
        extra={"work_order_id": work_order.id, "invoice_id": invoice.id},
    )
    return invoice


async def update_invoice(db: AsyncSession, principal: Principal, invoice_id: str, data: InvoiceUpdate) -> Invoice:
    invoice = await _get_or_404(db, Invoice, invoice_id, "Invoice")
    await _editable_work_order(db, principal, invoice.work_order_id)
    changes = _patch_changes(data, "invoice")
    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()
    if "status" in changes:
        changes["status"] = changes["status"].value

    for name, value in changes.items():
        setattr(invoice, name, value)
    await record_audit(db, principal.user_id, "INVOICE_UPDATE", "Invoice", invoice.id)
    await db.commit()
    return invoice


async def delete_invoice(db: AsyncSession, principal: Principal, invoice_id: str) -> None:
    invoice = await _get_or_404(db, Invoice, invoice_id, "Invoice")
    await _editable_work_order(db, principal, invoice.work_order_id)

    # Receipts survive the invoice; they simply lose the link
    await db.execute(
        update(PaymentReceipt)
        .where(PaymentReceipt.invoice_id == invoice.id)
        .values(invoice_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(invoice)
    await record_audit(db, principal.user_id, "INVOICE_DELETE", "Invoice", invoice_id)
    await db.commit()


# Payment receipts

async def _check_invoice_link(db: AsyncSession, work_order_id: str, invoice_id: Optional[str]) -> None:
    if not invoice_id:
        return
    invoice = await db.get(Invoice, invoice_id)
    if not invoice or invoice.work_order_id != work_order_id:
        raise ValidationError("Invoice does not belong to this work order", field="invoice_id")


async def list_payments(db: AsyncSession, principal: Principal, work_order_id: str) -> list[PaymentReceipt]:
    work_order = await _viewable_work_order(db, principal, work_order_id)
    return await load_payments(db, work_order.id)


async def get_payment(db: AsyncSession, principal: Principal, payment_id: str) -> PaymentReceipt:
    payment = await _get_or_404(db, PaymentReceipt, payment_id, "Payment")
    await _viewable_work_order(db, principal, payment.work_order_id)
    return payment


async def create_payment(
    db: AsyncSession,
    principal: Principal,
    work_order_id: str,
    data: PaymentCreate,
) -> PaymentReceipt:
    work_order = await _editable_work_order(db, principal, work_order_id)
    await _check_invoice_link(db, work_order.id, data.invoice_id)

    payment = PaymentReceipt(
        work_order_id=work_order.id,
        invoice_id=data.invoice_id or None,
        receipt_no=data.receipt_no.strip(),
        amount=data.amount,
        currency=data.currency.upper(),
        date=data.date,
        method=data.method.strip(),
        reference=data.reference,
        created_by_id=principal.user_id,
    )
    db.add(payment)
    await db.flush()
    await record_audit(db, principal.user_id, "PAYMENT_CREATE", "PaymentReceipt", payment.id)
    await db.commit()

    logger.info(
        f"Payment {payment.receipt_no} recorded: {payment.amount} {payment.currency}",
        extra={"work_order_id": work_order.id, "payment_id": payment.id},
    )
    return payment


async def update_payment(
    db: AsyncSession,
    principal: Principal,
    payment_id: str,
    data: PaymentUpdate,
) -> PaymentReceipt:
    payment = await _get_or_404(db, PaymentReceipt, payment_id, "Payment")
    await _editable_work_order(db, principal, payment.work_order_id)
    changes = _patch_changes(data, "payment")
    if "invoice_id" in changes:
        await _check_invoice_link(db, payment.work_order_id, changes["invoice_id"])
    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()

    for name, value in changes.items():
        setattr(payment, name, value)
    await record_audit(db, principal.user_id, "PAYMENT_UPDATE", "PaymentReceipt", payment.id)
    await db.commit()
    return payment


async def delete_payment(db: AsyncSession, principal: Principal, payment_id: str) -> None:
    payment = await _get_or_404(db, PaymentReceipt, payment_id, "Payment")
    await _editable_work_order(db, principal, payment.work_order_id)
    await db.delete(payment)
    await record_audit(db, principal.user_id, "PAYMENT_DELETE", "PaymentReceipt", payment_id)
    await db.commit()
