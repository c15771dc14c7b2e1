import enum
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Text, Date, Index

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class WorkOrderStatus(str, enum.Enum):
    """Lifecycle stages. Only PENDING_SETTLEMENT is set by hand; the rest are derived."""

    DRAFT = "DRAFT"
    PENDING_SERVICE = "PENDING_SERVICE"
    IN_SERVICE = "IN_SERVICE"
    COMPLETED = "COMPLETED"
    PENDING_SETTLEMENT = "PENDING_SETTLEMENT"


class WorkOrder(Base):
    """A ship-repair job tied to one vessel visit."""

    __tablename__ = "work_orders"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))

    # Human-readable number, e.g. "XQ-20260115-001". Assigned once on generation.
    internal_no = Column(String(32), unique=True, nullable=True, index=True)
    # Cached derived status, see services.work_order_service.derive_status
    status = Column(String(30), nullable=False, default=WorkOrderStatus.DRAFT.value, index=True)

    # Commercial
    operating_company = Column(String(100), nullable=False)
    order_type = Column(String(50), nullable=False)
    payment_terms = Column(String(100), nullable=False)
    customer_company = Column(String(255), nullable=False)
    po = Column(String(100))

    # Vessel
    vessel_name = Column(String(255), nullable=False)
    imo = Column(String(20), nullable=False, index=True)
    vessel_type = Column(String(100))
    year_built = Column(Integer)
    gross_tonnage = Column(Integer)
    vessel_notes = Column(Text)

    # Location
    location_type = Column(String(50), nullable=False)
    location_name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)

    # Scheduling window (start_date <= end_date)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Responsibility
    responsible_engineer_name = Column(String(200))
    responsible_ops_name = Column(String(200))

    # Ownership
    created_by_id = Column(String(36), nullable=False, index=True)

    # Soft delete
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    delete_reason = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_work_orders_active_created", "deleted_at", "created_at"),
    )

    @property
    def is_generated(self) -> bool:
        return bool(self.internal_no)

    def __repr__(self):
        return f"<WorkOrder {self.internal_no or self.id} - {self.status}>"
