from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from crowdlend.modules.campaigns.models import CampaignStatus, CampaignCategory


class CampaignCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20)
    category: CampaignCategory
    goal_amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    start_date: datetime
    end_date: datetime


class CampaignUpdate(BaseModel):
    """Partial patch; only allowed while the campaign is a draft"""
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20)
    goal_amount: Optional[Decimal] = Field(None, gt=0, max_digits=15, decimal_places=2)
    end_date: Optional[datetime] = None


class CampaignResponse(BaseModel):
    id: int
    creator_id: int
    title: str
    description: str
    category: CampaignCategory
    goal_amount: Decimal
    raised_amount: Decimal
    current_amount: Decimal
    total_donors: int
    progress_percentage: Decimal
    display_progress: Decimal
    start_date: datetime
    end_date: datetime
    status: CampaignStatus
    created_at: datetime

    class Config:
        from_attributes = True


class CampaignListResponse(BaseModel):
    campaigns: List[CampaignResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class CampaignStats(BaseModel):
    goal_amount: Decimal
    total_raised: Decimal
    total_donors: int
    progress_percentage: Decimal
    days_remaining: int
