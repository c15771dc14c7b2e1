"""Service items: the equipment jobs performed under a work order."""
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class ServiceItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class ServiceItemEngineer(Base):
    """Assignment of an ENGINEER user to a service item."""

    __tablename__ = "service_item_engineers"

    service_item_id = Column(String(36), ForeignKey("service_items.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), primary_key=True, index=True)


class ServiceItem(Base):
    """One piece of equipment and the work to be done on it.

    IN_PROGRESS requires at least one assigned engineer. Deletion is soft.
    """

    __tablename__ = "service_items"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=ServiceItemStatus.PENDING.value)
    equipment_name = Column(String(255), nullable=False)
    model = Column(String(255))
    serial = Column(String(255))
    service_content = Column(Text, nullable=False)

    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    engineers = relationship("User", secondary="service_item_engineers", order_by="User.name")
    attachments = relationship(
        "ServiceAttachment",
        back_populates="service_item",
        order_by="ServiceAttachment.created_at",
    )

    __table_args__ = (
        Index("idx_service_items_work_order_active", "work_order_id", "deleted_at"),
    )

    @property
    def assigned_engineers(self):
        return self.engineers

    def __repr__(self):
        return f"<ServiceItem {self.equipment_name} - {self.status}>"


class ServiceAttachment(Base):
    __tablename__ = "service_attachments"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    service_item_id = Column(String(36), ForeignKey("service_items.id"), nullable=False, index=True)

    # Blob store key
    path = Column(String(500), nullable=False)
    filename = Column(String(255), nullable=False)
    mime_type = Column(String(150), nullable=False)
    size = Column(Integer, nullable=False)

    uploader_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    service_item = relationship("ServiceItem", back_populates="attachments")

    def __repr__(self):
        return f"<ServiceAttachment {self.filename}>"
