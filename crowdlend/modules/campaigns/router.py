from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_cache, get_current_active_user, require_roles
from crowdlend.core.permissions import UserRole
from crowdlend.modules.users.models import User
from crowdlend.modules.campaigns.models import CampaignStatus, CampaignCategory
from crowdlend.modules.campaigns import schemas
from crowdlend.modules.campaigns.services import CampaignService

router = APIRouter(prefix="/api/v1/campaigns", tags=["campaigns"])


@router.post("/", response_model=schemas.CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: schemas.CampaignCreate,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(require_roles(UserRole.CAMPAIGN_CREATOR))
):
    """
    Create a campaign.

    - Starts in DRAFT with zeroed aggregates
    - End date must be after start date
    """
    return await CampaignService(db, cache).create(current_user.id, data)


@router.get("/", response_model=schemas.CampaignListResponse)
async def list_campaigns(
    status: Optional[CampaignStatus] = None,
    category: Optional[CampaignCategory] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """List campaigns with filtering"""
    campaigns, total = await CampaignService(db, cache).list_campaigns(
        status, category, search, page, page_size
    )
    return {
        "campaigns": campaigns,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size
    }


@router.get("/{campaign_id}", response_model=schemas.CampaignResponse)
async def get_campaign(
    campaign_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    return await CampaignService(db, cache).get_view(campaign_id)


@router.put("/{campaign_id}", response_model=schemas.CampaignResponse)
async def update_campaign(
    campaign_id: int,
    data: schemas.CampaignUpdate,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    """Edit a draft campaign (creator only)"""
    return await CampaignService(db, cache).update(campaign_id, current_user.id, data)


@router.post("/{campaign_id}/publish", response_model=schemas.CampaignResponse)
async def publish_campaign(
    campaign_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    """Publish a draft campaign (creator only)"""
    return await CampaignService(db, cache).publish(campaign_id, current_user.id)


@router.post("/{campaign_id}/cancel", response_model=schemas.CampaignResponse)
async def cancel_campaign(
    campaign_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel a draft or active campaign (creator only)"""
    return await CampaignService(db, cache).cancel(campaign_id, current_user.id)


@router.get("/{campaign_id}/stats", response_model=schemas.CampaignStats)
async def get_campaign_stats(
    campaign_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    return await CampaignService(db, cache).stats(campaign_id)
