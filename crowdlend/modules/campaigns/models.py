from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from crowdlend.core.database import Base
from crowdlend.core.ledger import clamp_percentage
import enum


class CampaignStatus(str, enum.Enum):
    """Campaign lifecycle; COMPLETED, CANCELLED and EXPIRED are terminal"""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


TERMINAL_CAMPAIGN_STATUSES = {CampaignStatus.COMPLETED, CampaignStatus.CANCELLED, CampaignStatus.EXPIRED}


class CampaignCategory(str, enum.Enum):
    TECHNOLOGY = "TECHNOLOGY"
    CREATIVE = "CREATIVE"
    COMMUNITY = "COMMUNITY"
    EDUCATION = "EDUCATION"
    HEALTHCARE = "HEALTHCARE"
    ENVIRONMENT = "ENVIRONMENT"
    BUSINESS = "BUSINESS"
    SOCIAL = "SOCIAL"
    OTHER = "OTHER"


class Campaign(Base):
    """Crowdfunding campaign owned by a single creator"""
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(SQLEnum(CampaignCategory), nullable=False, index=True)

    # Funding aggregates; raised_amount is always the sum of donations
    goal_amount = Column(Numeric(15, 2), nullable=False)
    raised_amount = Column(Numeric(15, 2), default=0, nullable=False)
    current_amount = Column(Numeric(15, 2), default=0, nullable=False)
    total_donors = Column(Integer, default=0, nullable=False)
    progress_percentage = Column(Numeric(10, 2), default=0, nullable=False)  # unclamped

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(SQLEnum(CampaignStatus), default=CampaignStatus.DRAFT, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def display_progress(self):
        return clamp_percentage(self.progress_percentage or 0)

    def __repr__(self):
        return f"<Campaign(id={self.id}, status={self.status}, raised={self.raised_amount}/{self.goal_amount})>"
