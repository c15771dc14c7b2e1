"""Profit report: a point-in-time reconciliation of a work order's costs and income."""
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Numeric, JSON, ForeignKey, Index, text

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class ProfitReportStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"


class ProfitReport(Base):
    __tablename__ = "profit_reports"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)

    # DRAFT -> CONFIRMED, one way
    status = Column(String(20), nullable=False, default=ProfitReportStatus.DRAFT.value)

    # Sums over many ledger rows, wider than the per-row money columns
    revenue_total = Column(Numeric(20, 2), nullable=False)
    cost_total = Column(Numeric(20, 2), nullable=False)
    profit = Column(Numeric(20, 2), nullable=False)
    margin_percent = Column(Numeric(26, 2), nullable=False)

    # {"invoice_total", "receipts_total", "outstanding", "quote_total", "final_quote_amount"}
    income_breakdown = Column(JSON, nullable=False, default=dict)
    # {category: total}
    cost_breakdown = Column(JSON, nullable=False, default=dict)

    profitability_rating = Column(String(1), nullable=False)
    payment_rating = Column(String(1), nullable=False)
    overall_rating = Column(String(1), nullable=False)

    # Filled on confirmation only
    locked_cost_snapshot = Column(JSON, nullable=False, default=dict)
    locked_invoice_snapshot = Column(JSON, nullable=False, default=dict)
    confirmed_by_id = Column(String(36), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # One confirmed report per work order; drafts are unrestricted
        Index(
            "uq_profit_reports_confirmed_per_work_order",
            "work_order_id",
            unique=True,
            postgresql_where=text("status = 'CONFIRMED'"),
            sqlite_where=text("status = 'CONFIRMED'"),
        ),
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == ProfitReportStatus.CONFIRMED.value

    def __repr__(self):
        return f"<ProfitReport {self.id} {self.status} {self.overall_rating}>"
