from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, update
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from crowdlend.core.cache import Cache, CacheKeys, CacheTTL
from crowdlend.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from crowdlend.core.database import atomic
from crowdlend.core.ledger import HUNDRED, days_until, ensure_utc, money, percentage
from crowdlend.modules.campaigns.models import (
    Campaign, CampaignStatus, CampaignCategory, TERMINAL_CAMPAIGN_STATUSES
)
from crowdlend.modules.campaigns.schemas import (
    CampaignCreate, CampaignUpdate, CampaignResponse, CampaignStats
)
from crowdlend.modules.donations.models import Donation

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = set(CampaignStatus) - TERMINAL_CAMPAIGN_STATUSES


class CampaignService:
    """Campaign lifecycle: draft -> active -> completed/cancelled/expired"""

    def __init__(self, db: AsyncSession, cache: Cache):
        self.db = db
        self.cache = cache

    # ============================================================
    # Lookups
    # ============================================================

    async def get_campaign(self, campaign_id: int) -> Campaign:
        """Load a campaign from the database, bypassing the cache"""
        result = await self.db.execute(select(Campaign).where(Campaign.id == campaign_id))
        campaign = result.scalar_one_or_none()
        if not campaign:
            raise NotFoundError("Campaign not found", "CAMPAIGN_NOT_FOUND")
        return campaign

    async def get_view(self, campaign_id: int) -> CampaignResponse:
        """Read-through cached read model"""
        key = CacheKeys.campaign(campaign_id)
        cached = await self.cache.get(key)
        if cached:
            return CampaignResponse.model_validate(cached)

        campaign = await self.get_campaign(campaign_id)
        view = CampaignResponse.model_validate(campaign)
        # Terminal campaigns no longer change
        ttl = CacheTTL.LONG if campaign.status in TERMINAL_CAMPAIGN_STATUSES else CacheTTL.MEDIUM
        await self.cache.set(key, view.model_dump(mode="json"), ttl)
        return view

    async def list_campaigns(
        self,
        status: Optional[CampaignStatus] = None,
        category: Optional[CampaignCategory] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[CampaignResponse], int]:
        """Paginated listing; unfiltered-by-search pages are cached briefly"""
        key = None
        if not search:
            filters = f"{status.value if status else ''}|{category.value if category else ''}"
            key = CacheKeys.campaigns(page, page_size, filters)
            cached = await self.cache.get(key)
            if cached:
                return [CampaignResponse.model_validate(c) for c in cached["campaigns"]], cached["total"]

        query = select(Campaign)
        if status:
            query = query.where(Campaign.status == status)
        if category:
            query = query.where(Campaign.category == category)
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Campaign.title.ilike(search_term),
                    Campaign.description.ilike(search_term)
                )
            )

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Campaign.created_at.desc(), Campaign.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        campaigns = [CampaignResponse.model_validate(c) for c in result.scalars().all()]

        if key:
            await self.cache.set(
                key,
                {"campaigns": [c.model_dump(mode="json") for c in campaigns], "total": total},
                CacheTTL.SHORT
            )
        return campaigns, total

    # ============================================================
    # Lifecycle
    # ============================================================

    async def create(self, creator_id: int, data: CampaignCreate) -> Campaign:
        start_date = ensure_utc(data.start_date)
        end_date = ensure_utc(data.end_date)

        if end_date <= start_date:
            raise ValidationError("End date must be after start date", "INVALID_DATE_RANGE")

        campaign = Campaign(
            creator_id=creator_id,
            title=data.title,
            description=data.description,
            category=data.category,
            goal_amount=money(data.goal_amount),
            raised_amount=money(0),
            current_amount=money(0),
            total_donors=0,
            progress_percentage=money(0),
            start_date=start_date,
            end_date=end_date,
            status=CampaignStatus.DRAFT
        )
        self.db.add(campaign)
        await self.db.commit()
        await self.db.refresh(campaign)

        await self.cache.delete_pattern(CacheKeys.CAMPAIGN_LISTS)
        logger.info(f"Campaign {campaign.id} created by user {creator_id}")
        return campaign

    async def update(self, campaign_id: int, requester_id: int, data: CampaignUpdate) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        self._ensure_owner(campaign, requester_id, "edit")
        self._ensure_draft(campaign, "edited")

        patch = data.model_dump(exclude_unset=True, exclude_none=True)
        if "end_date" in patch:
            patch["end_date"] = ensure_utc(patch["end_date"])
            if patch["end_date"] <= ensure_utc(campaign.start_date):
                raise ValidationError("End date must be after start date", "INVALID_DATE_RANGE")
        if "goal_amount" in patch:
            patch["goal_amount"] = money(patch["goal_amount"])

        for field, value in patch.items():
            setattr(campaign, field, value)
        if "goal_amount" in patch:
            campaign.progress_percentage = percentage(campaign.raised_amount, campaign.goal_amount)

        await self.db.commit()
        await self.db.refresh(campaign)
        await self.invalidate(campaign_id)
        return campaign

    async def publish(self, campaign_id: int, requester_id: int) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        self._ensure_owner(campaign, requester_id, "publish")
        self._ensure_draft(campaign, "published")

        return await self._transition(campaign, CampaignStatus.ACTIVE)

    async def cancel(self, campaign_id: int, requester_id: int) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        self._ensure_owner(campaign, requester_id, "cancel")

        if campaign.status not in CANCELLABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot cancel a campaign in {campaign.status.value} status", "INVALID_STATUS"
            )

        return await self._transition(campaign, CampaignStatus.CANCELLED)

    async def recompute_progress(self, campaign_id: int) -> Campaign:
        """
        Rebuild raised amount, donor count and progress from the full
        donation set. Idempotent.

        The sum is read and written by a single UPDATE under a row lock.
        """
        campaign = await self.get_campaign(campaign_id)

        raised = (
            select(func.coalesce(func.sum(Donation.amount), 0))
            .where(Donation.campaign_id == Campaign.id)
            .scalar_subquery()
        )
        donors = (
            select(func.count(Donation.id))
            .where(Donation.campaign_id == Campaign.id)
            .scalar_subquery()
        )

        async with atomic(self.db):
            await self.db.execute(
                select(Campaign.id).where(Campaign.id == campaign_id).with_for_update()
            )
            await self.db.execute(
                update(Campaign)
                .where(Campaign.id == campaign_id)
                .values(
                    raised_amount=raised,
                    current_amount=raised,
                    total_donors=donors,
                    progress_percentage=func.round(raised * HUNDRED / Campaign.goal_amount, 2)
                )
                .execution_options(synchronize_session=False)
            )

        await self.db.refresh(campaign)
        await self.invalidate(campaign_id)
        return campaign

    async def stats(self, campaign_id: int, now: Optional[datetime] = None) -> CampaignStats:
        view = await self.get_view(campaign_id)
        return CampaignStats(
            goal_amount=view.goal_amount,
            total_raised=view.raised_amount,
            total_donors=view.total_donors,
            progress_percentage=view.progress_percentage,
            days_remaining=days_until(view.end_date, now)
        )

    # ============================================================
    # Helpers
    # ============================================================

    async def _transition(self, campaign: Campaign, new_status: CampaignStatus) -> Campaign:
        old_status = campaign.status
        campaign.status = new_status
        await self.db.commit()
        await self.db.refresh(campaign)
        await self.invalidate(campaign.id)
        logger.info(f"Campaign {campaign.id}: {old_status.value} -> {new_status.value}")
        return campaign

    async def invalidate(self, campaign_id: int) -> None:
        await self.cache.delete(CacheKeys.campaign(campaign_id))
        await self.cache.delete_pattern(CacheKeys.CAMPAIGN_LISTS)

    @staticmethod
    def _ensure_owner(campaign: Campaign, requester_id: int, verb: str) -> None:
        if campaign.creator_id != requester_id:
            raise ForbiddenError(f"You can only {verb} your own campaigns", "FORBIDDEN")

    @staticmethod
    def _ensure_draft(campaign: Campaign, verb: str) -> None:
        if campaign.status != CampaignStatus.DRAFT:
            raise InvalidStateError(f"Only draft campaigns can be {verb}", "INVALID_STATUS")
