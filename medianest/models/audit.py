"""AuditLog model.

Immutable record of every successful folder mutation.
Fields:
    action: create, rename, delete, move, assign
    resource_type: folder, item
    resource_id: id of the affected resource
    details: JSON string with additional context
"""

from sqlalchemy import Column, String, DateTime, Integer, Text
from sqlalchemy.sql import func
from ..database import Base


class AuditLog(Base):
    """Written by the service layer, never modified."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
