from sqlalchemy import Column, String, DateTime
import uuid

from shiprepair_erp.database import Base
from shiprepair_erp.utils.clock import utcnow


class User(Base):
    """Directory entry for a user known to the external token service.

    The API never authenticates against this table; it is read to resolve
    notification recipients and is populated by the seed script.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False, index=True)  # ENGINEER, FINANCE, OPS, ADMIN
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
