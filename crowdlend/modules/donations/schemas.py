from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class DonationCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    is_anonymous: bool = False
    message: Optional[str] = Field(None, max_length=500)
    external_reference: Optional[str] = Field(None, max_length=100)


class DonationResponse(BaseModel):
    id: int
    campaign_id: int
    donor_id: Optional[int] = None  # hidden on public listings of anonymous donations
    amount: Decimal
    is_anonymous: bool
    message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DonationHistoryResponse(BaseModel):
    donations: List[DonationResponse]
    total: int
    page: int
    page_size: int


class DonationTotalResponse(BaseModel):
    donor_id: int
    total_donated: Decimal
