"""Profit report engine.

A report reconciles a work order's cost ledger against its income ledger and
grades the result. Drafts are cheap, disposable calculations. Confirming a
draft freezes the books: every open cost line is locked, the cost and income
records are snapshotted onto the report and the figures are recomputed from
that frozen state. A work order can carry only one confirmed report.

Rating rules:
- profitability: margin >= 30 -> A, >= 15 -> B, >= 5 -> C, else D
- payment: nothing invoiced or received -> C; fully paid -> A; any overdue
  invoice -> D; partly paid -> B; else C
- overall: mean of the two scores (A=4 .. D=1), A >= 3.5, B >= 2.5, C >= 1.5
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiprepair_erp.exceptions import NotFoundError, ConflictError
from shiprepair_erp.models.profit_report import ProfitReport, ProfitReportStatus
from shiprepair_erp.schemas.cost_line import CostLineResponse
from shiprepair_erp.schemas.invoice import InvoiceResponse
from shiprepair_erp.schemas.payment import PaymentResponse
from shiprepair_erp.security.rbac import (
    Principal,
    ensure_can_edit_work_order,
    ensure_can_export,
    ensure_can_view_financials,
)
from shiprepair_erp.services.audit_service import record_audit
from shiprepair_erp.services.cost_ledger import (
    ZERO,
    CostFigures,
    load_active_cost_lines,
    lock_cost_lines,
    quantize_money,
    summarize_cost_lines,
)
from shiprepair_erp.services.income_ledger import IncomeFigures, load_income
from shiprepair_erp.services.work_order_service import get_active_work_order
from shiprepair_erp.utils import clock

logger = logging.getLogger(__name__)

RATING_SCORES = {"A": 4, "B": 3, "C": 2, "D": 1}
HUNDRED = Decimal("100")


def rating_from_margin(margin_percent: Decimal) -> str:
    if margin_percent >= 30:
        return "A"
    if margin_percent >= 15:
        return "B"
    if margin_percent >= 5:
        return "C"
    return "D"


def payment_rating(invoice_total: Decimal, receipts_total: Decimal, has_overdue: bool) -> str:
    if invoice_total == 0 and receipts_total == 0:
        return "C"
    if invoice_total > 0 and receipts_total >= invoice_total:
        return "A"
    if has_overdue:
        return "D"
    if receipts_total > 0:
        return "B"
    return "C"


def overall_rating(profitability: str, payment: str) -> str:
    average = (RATING_SCORES[profitability] + RATING_SCORES[payment]) / 2
    if average >= 3.5:
        return "A"
    if average >= 2.5:
        return "B"
    if average >= 1.5:
        return "C"
    return "D"


def _as_json_number(value: Decimal) -> float:
    return float(quantize_money(value))


@dataclass
class ProfitFigures:
    revenue_total: Decimal
    cost_total: Decimal
    profit: Decimal
    margin_percent: Decimal
    profitability_rating: str
    payment_rating: str
    overall_rating: str
    income_breakdown: dict = field(default_factory=dict)
    cost_breakdown: dict = field(default_factory=dict)


def compute_profit_figures(costs: CostFigures, income: IncomeFigures) -> ProfitFigures:
    """Pure calculation over already-loaded ledger totals."""
    # Invoices are the revenue basis; the final quote only stands in until one exists
    if income.invoice_total > 0:
        revenue = income.invoice_total
    elif income.final_quote_amount > 0:
        revenue = income.final_quote_amount
    else:
        revenue = ZERO

    cost_total = costs.total_cost
    profit = revenue - cost_total
    margin = profit / cost_total * HUNDRED if cost_total > 0 else ZERO

    profitability = rating_from_margin(margin)
    payment = payment_rating(income.invoice_total, income.receipts_total, income.has_overdue_invoice)

    return ProfitFigures(
        revenue_total=quantize_money(revenue),
        cost_total=quantize_money(cost_total),
        profit=quantize_money(profit),
        # Stored rounded; the rating above uses the exact value
        margin_percent=margin.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        profitability_rating=profitability,
        payment_rating=payment,
        overall_rating=overall_rating(profitability, payment),
        income_breakdown={
            "invoice_total": _as_json_number(income.invoice_total),
            "receipts_total": _as_json_number(income.receipts_total),
            "outstanding": _as_json_number(income.outstanding),
            "quote_total": _as_json_number(income.quote_total),
            "final_quote_amount": _as_json_number(income.final_quote_amount),
        },
        cost_breakdown={
            category: _as_json_number(total) for category, total in sorted(costs.category_totals.items())
        },
    )


def _apply_figures(report: ProfitReport, figures: ProfitFigures) -> None:
    report.revenue_total = figures.revenue_total
    report.cost_total = figures.cost_total
    report.profit = figures.profit
    report.margin_percent = figures.margin_percent
    report.income_breakdown = figures.income_breakdown
    report.cost_breakdown = figures.cost_breakdown
    report.profitability_rating = figures.profitability_rating
    report.payment_rating = figures.payment_rating
    report.overall_rating = figures.overall_rating


async def _get_report(db: AsyncSession, report_id: str, for_update: bool = False) -> ProfitReport:
    query = (
        select(ProfitReport)
        .where(ProfitReport.id == report_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    report = (await db.execute(query)).scalar_one_or_none()
    if not report:
        raise NotFoundError("Profit report", report_id)
    return report


async def list_reports(db: AsyncSession, principal: Principal, work_order_id: str) -> list[ProfitReport]:
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_view_financials(principal, work_order)
    result = await db.execute(
        select(ProfitReport)
        .where(ProfitReport.work_order_id == work_order.id)
        .order_by(ProfitReport.created_at.desc(), ProfitReport.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_report(db: AsyncSession, principal: Principal, report_id: str) -> ProfitReport:
    report = await _get_report(db, report_id)
    work_order = await get_active_work_order(db, report.work_order_id)
    ensure_can_view_financials(principal, work_order)
    return report


async def generate_report(db: AsyncSession, principal: Principal, work_order_id: str) -> ProfitReport:
    """Compute a fresh DRAFT report. Always creates a new row."""
    work_order = await get_active_work_order(db, work_order_id)
    ensure_can_edit_work_order(principal, work_order)

    costs = summarize_cost_lines(await load_active_cost_lines(db, work_order.id))
    income = await load_income(db, work_order.id)
    figures = compute_profit_figures(costs, income)

    report = ProfitReport(
        work_order_id=work_order.id,
        status=ProfitReportStatus.DRAFT.value,
        locked_cost_snapshot={},
        locked_invoice_snapshot={},
        created_by_id=principal.user_id,
    )
    _apply_figures(report, figures)
    db.add(report)
    await db.flush()
    await record_audit(db, principal.user_id, "PROFIT_REPORT_GENERATE", "ProfitReport", report.id)
    await db.commit()

    logger.info(
        f"Draft profit report generated: revenue {figures.revenue_total}, cost {figures.cost_total}, "
        f"rating {figures.overall_rating}",
        extra={"work_order_id": work_order.id, "report_id": report.id},
    )
    return report


async def _other_confirmed_report_id(db: AsyncSession, work_order_id: str, report_id: str) -> Optional[str]:
    return await db.scalar(
        select(ProfitReport.id).where(
            ProfitReport.work_order_id == work_order_id,
            ProfitReport.status == ProfitReportStatus.CONFIRMED.value,
            ProfitReport.id != report_id,
        )
    )


async def confirm_report(db: AsyncSession, principal: Principal, report_id: str) -> ProfitReport:
    """Confirm a draft, locking the cost ledger and freezing both ledgers onto it.

    Runs as one transaction. The work order row is locked first and the report
    is re-read under that lock, so a confirmation that queued behind another
    one sees its committed result. The DRAFT -> CONFIRMED write is conditional
    on the stored status and the partial unique index rejects a second
    confirmed report for the same work order.
    """
    report = await _get_report(db, report_id)
    work_order_id = report.work_order_id
    work_order = await get_active_work_order(db, work_order_id, for_update=True)
    ensure_can_edit_work_order(principal, work_order)

    report = await _get_report(db, report_id, for_update=True)
    if report.is_confirmed:
        raise ConflictError("Profit report already confirmed")

    costs = summarize_cost_lines(await load_active_cost_lines(db, work_order_id))
    if costs.total_cost <= 0:
        raise ConflictError("Costs must be greater than zero to confirm")

    income = await load_income(db, work_order_id)
    if income.invoice_total <= 0 and income.final_quote_amount <= 0:
        raise ConflictError("Confirmation requires at least one invoice or a final quote")

    if await _other_confirmed_report_id(db, work_order_id, report_id):
        raise ConflictError("A confirmed profit report already exists for this work order")

    now = clock.utcnow()
    try:
        claimed = await db.execute(
            update(ProfitReport)
            .where(ProfitReport.id == report_id, ProfitReport.status == ProfitReportStatus.DRAFT.value)
            .values(status=ProfitReportStatus.CONFIRMED.value, confirmed_by_id=principal.user_id, confirmed_at=now)
            .execution_options(synchronize_session=False)
        )
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Lost confirmation race for work order {work_order_id}", extra={"report_id": report_id})
        raise ConflictError("A confirmed profit report already exists for this work order")
    if claimed.rowcount != 1:
        await db.rollback()
        logger.warning(f"Profit report {report_id} was confirmed concurrently")
        raise ConflictError("Profit report already confirmed")

    locked = await lock_cost_lines(db, work_order_id, principal.user_id, now)

    # Re-read after locking so the snapshot carries the lock state
    lines = await load_active_cost_lines(db, work_order_id)
    costs = summarize_cost_lines(lines)
    _apply_figures(report, compute_profit_figures(costs, income))

    report.locked_cost_snapshot = {
        "lines": [CostLineResponse.model_validate(line).model_dump(mode="json") for line in lines],
    }
    report.locked_invoice_snapshot = {
        "invoices": [InvoiceResponse.model_validate(i).model_dump(mode="json") for i in income.invoices],
        "payments": [PaymentResponse.model_validate(p).model_dump(mode="json") for p in income.payments],
    }
    # Already written by the conditional update; mirrored onto the loaded row
    report.status = ProfitReportStatus.CONFIRMED.value
    report.confirmed_by_id = principal.user_id
    report.confirmed_at = now

    await record_audit(db, principal.user_id, "PROFIT_REPORT_CONFIRM", "ProfitReport", report_id)
    await db.commit()

    logger.info(
        f"Profit report confirmed, {locked} cost line(s) locked",
        extra={"work_order_id": work_order_id, "report_id": report_id, "user_id": principal.user_id},
    )
    return report


async def export_report(
    db: AsyncSession,
    principal: Principal,
    report_id: str,
    export_format: Optional[str] = None,
) -> str:
    ensure_can_export(principal)
    report = await get_report(db, principal, report_id)
    return f"Export {export_format or 'pdf'} placeholder for report {report.id}"


async def print_report(db: AsyncSession, principal: Principal, report_id: str) -> str:
    ensure_can_export(principal)
    report = await get_report(db, principal, report_id)
    return f"Print placeholder for report {report.id}"
