"""Cost ledger models: priced lines consumed by a work order and their attachments."""
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Text, Boolean, Integer, Numeric, ForeignKey, Index

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class CostCategory(str, enum.Enum):
    PARTS = "PARTS"
    LABOR = "LABOR"
    OUTSOURCE = "OUTSOURCE"
    OTHER = "OTHER"


class CostLine(Base):
    """One priced item or service consumed while executing a work order.

    line_total is always round(unit_price * quantity, 2) and is written by the
    service layer only. Once is_locked is set no field may change and the row
    cannot be soft-deleted.
    """

    __tablename__ = "cost_lines"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)

    item_name = Column(String(255), nullable=False)
    category = Column(String(20), nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)
    line_total = Column(Numeric(14, 2), nullable=False)
    notes = Column(Text)

    # Lock (monotonic false -> true)
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    locked_by_id = Column(String(36), nullable=True)

    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_cost_lines_work_order_active", "work_order_id", "deleted_at"),
    )

    def __repr__(self):
        return f"<CostLine {self.item_name}: {self.line_total}{' (locked)' if self.is_locked else ''}>"


class CostAttachment(Base):
    """Supporting document for a work order's costs, optionally tied to one line."""

    __tablename__ = "cost_attachments"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)
    cost_line_id = Column(String(36), ForeignKey("cost_lines.id"), nullable=True, index=True)

    # Blob store key
    path = Column(String(500), nullable=False)
    filename = Column(String(255), nullable=False)
    mime_type = Column(String(150), nullable=False)
    size = Column(Integer, nullable=False)

    uploader_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<CostAttachment {self.filename}>"
