"""
Audit Log - one row per mutating operation.
"""
import uuid

from sqlalchemy import Column, String, DateTime

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(36), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)  # WORK_ORDER_CREATE, COST_LINE_LOCK, ...
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.entity_type} {self.entity_id}>"
