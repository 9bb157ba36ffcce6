from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from crowdlend.core.database import Base
import enum


class AdminAction(str, enum.Enum):
    APPROVE_CAMPAIGN = "APPROVE_CAMPAIGN"
    REJECT_CAMPAIGN = "REJECT_CAMPAIGN"
    APPROVE_LOAN = "APPROVE_LOAN"
    REJECT_LOAN = "REJECT_LOAN"
    DEFAULT_LOAN = "DEFAULT_LOAN"
    BLOCK_USER = "BLOCK_USER"
    UNBLOCK_USER = "UNBLOCK_USER"


class AdminAuditLog(Base):
    """Append-only record of privileged actions"""
    __tablename__ = "admin_audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Who
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # What
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False, index=True)  # campaign, loan, user
    entity_id = Column(Integer, nullable=False)

    # Details
    changes = Column(Text, nullable=True)  # JSON
    reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<AdminAuditLog(id={self.id}, action={self.action}, entity={self.entity_type}:{self.entity_id})>"
