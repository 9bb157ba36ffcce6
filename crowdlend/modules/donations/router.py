from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_cache, get_current_active_user
from crowdlend.modules.users.models import User
from crowdlend.modules.donations import schemas
from crowdlend.modules.donations.services import DonationService

router = APIRouter(prefix="/api/v1/donations", tags=["donations"])


@router.post(
    "/campaign/{campaign_id}",
    response_model=schemas.DonationResponse,
    status_code=status.HTTP_201_CREATED
)
async def donate(
    campaign_id: int,
    data: schemas.DonationCreate,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    """
    Donate to an active campaign.

    - Campaign must be ACTIVE and not past its end date
    """
    return await DonationService(db, cache).record(
        current_user.id,
        campaign_id,
        data.amount,
        is_anonymous=data.is_anonymous,
        message=data.message,
        external_reference=data.external_reference
    )


@router.get("/campaign/{campaign_id}", response_model=List[schemas.DonationResponse])
async def get_campaign_donations(
    campaign_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Public donation feed; anonymous donors are hidden"""
    donations = await DonationService(db, cache).list_for_campaign(campaign_id, limit)
    feed = []
    for donation in donations:
        item = schemas.DonationResponse.model_validate(donation)
        if donation.is_anonymous:
            item.donor_id = None
        feed.append(item)
    return feed


@router.get("/user/history", response_model=schemas.DonationHistoryResponse)
async def get_my_donations(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    donations, total = await DonationService(db, cache).list_for_donor(current_user.id, page, page_size)
    return {"donations": donations, "total": total, "page": page, "page_size": page_size}


@router.get("/user/total", response_model=schemas.DonationTotalResponse)
async def get_my_total_donated(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    total = await DonationService(db, cache).total_donated(current_user.id)
    return {"donor_id": current_user.id, "total_donated": total}
