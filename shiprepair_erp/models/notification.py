import uuid

from sqlalchemy import Column, String, DateTime, Text

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class Notification(Base):
    """Outbound notification record. Delivery is handled outside this service."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(50), nullable=False, index=True)
    recipient = Column(String(255), nullable=False)
    cc = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    related_work_order_id = Column(String(36), nullable=True, index=True)
    created_by_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Notification {self.type} -> {self.recipient}>"
