import uuid

from sqlalchemy import Column, String, DateTime, Date, Numeric, ForeignKey

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class PaymentReceipt(Base):
    """Money received for a work order, optionally against a specific invoice."""

    __tablename__ = "payment_receipts"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)

    receipt_no = Column(String(50), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    date = Column(Date, nullable=False)
    method = Column(String(50), nullable=False)  # wire, cash, check, card, ...
    reference = Column(String(255))

    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PaymentReceipt {self.receipt_no} {self.amount}>"
