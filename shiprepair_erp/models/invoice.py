import enum
import uuid

from sqlalchemy import Column, String, DateTime, Date, Text, Numeric, ForeignKey

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class Invoice(Base):
    """Invoice issued against a work order."""

    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)

    invoice_no = Column(String(50), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)
    notes = Column(Text)

    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Invoice {self.invoice_no}>"
