"""
Admin campaign moderation endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_cache, require_admin
from crowdlend.modules.admin.schemas import ReasonRequest
from crowdlend.modules.admin.services import AdminService
from crowdlend.modules.campaigns.schemas import CampaignResponse
from crowdlend.modules.users.models import User

router = APIRouter(prefix="/campaigns", tags=["admin-campaigns"])


@router.get("/pending", response_model=List[CampaignResponse])
async def list_pending_campaigns(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Draft campaigns awaiting review"""
    return await AdminService(db, cache).pending_campaigns()


@router.post("/{campaign_id}/approve", response_model=CampaignResponse)
async def approve_campaign(
    campaign_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    return await AdminService(db, cache).approve_campaign(admin.id, campaign_id)


@router.post("/{campaign_id}/reject", response_model=CampaignResponse)
async def reject_campaign(
    campaign_id: int,
    data: ReasonRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    return await AdminService(db, cache).reject_campaign(admin.id, campaign_id, data.reason)
