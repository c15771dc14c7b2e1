"""
SQLAlchemy model for work order quotes.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Date, Text, Boolean, Numeric, ForeignKey, Index, text

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class Quote(Base):
    """Price offered to the customer for a work order.

    At most one quote per work order carries is_final; the final quote is the
    revenue basis while no invoice exists.
    """
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)

    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    validity_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    is_final = Column(Boolean, nullable=False, default=False)

    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # One final quote per work order
        Index(
            "uq_quotes_final_per_work_order",
            "work_order_id",
            unique=True,
            postgresql_where=text("is_final"),
            sqlite_where=text("is_final = 1"),
        ),
    )

    def __repr__(self):
        return f"<Quote(id={self.id}, amount={self.amount} {self.currency}, final={self.is_final})>"
