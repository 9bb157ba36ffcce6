from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime, Text
from sqlalchemy.sql import func
from crowdlend.core.database import Base


class Donation(Base):
    """One donor's contribution to one campaign; immutable once created"""
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    donor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Numeric(15, 2), nullable=False)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    message = Column(Text, nullable=True)

    # Payment gateway reference
    external_reference = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Donation(id={self.id}, campaign={self.campaign_id}, amount={self.amount})>"
