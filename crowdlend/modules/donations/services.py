from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from crowdlend.core.cache import Cache
from crowdlend.core.database import atomic
from crowdlend.core.exceptions import ExpiredError, InvalidAmountError, InvalidStateError
from crowdlend.core.ledger import money, utcnow, ensure_utc
from crowdlend.modules.campaigns.models import Campaign, CampaignStatus
from crowdlend.modules.campaigns.services import CampaignService
from crowdlend.modules.donations.models import Donation
from crowdlend.modules.transactions.models import TransactionType
from crowdlend.modules.transactions.services import TransactionService

logger = logging.getLogger(__name__)


class DonationService:
    """Records donations and keeps campaign aggregates in step"""

    def __init__(self, db: AsyncSession, cache: Cache):
        self.db = db
        self.campaigns = CampaignService(db, cache)
        self.ledger = TransactionService(db)

    async def record(
        self,
        donor_id: int,
        campaign_id: int,
        amount: Decimal,
        is_anonymous: bool = False,
        message: Optional[str] = None,
        external_reference: Optional[str] = None
    ) -> Donation:
        """
        Record a donation.

        The donation row, its ledger transaction and the campaign increment
        are committed as one unit; progress is then recomputed from the full
        donation set, which also drops the cached read model.
        """
        amount = money(amount)
        if amount <= 0:
            raise InvalidAmountError("Donation amount must be positive", "INVALID_AMOUNT")

        campaign = await self.campaigns.get_campaign(campaign_id)

        if campaign.status != CampaignStatus.ACTIVE:
            raise InvalidStateError("Campaign is not active", "CAMPAIGN_INACTIVE")

        if ensure_utc(campaign.end_date) < utcnow():
            raise ExpiredError("Campaign has ended", "CAMPAIGN_EXPIRED")

        async with atomic(self.db):
            donation = Donation(
                campaign_id=campaign_id,
                donor_id=donor_id,
                amount=amount,
                is_anonymous=is_anonymous,
                message=message,
                external_reference=external_reference
            )
            self.db.add(donation)

            self.ledger.record(
                TransactionType.DONATION,
                amount,
                user_id=donor_id,
                reference_type="campaign",
                reference_id=campaign_id,
                description=f"Donation to campaign: {campaign.title}",
                external_reference=external_reference
            )

            # Increment in SQL; the status guard rejects a campaign closed concurrently
            result = await self.db.execute(
                update(Campaign)
                .where(Campaign.id == campaign_id, Campaign.status == CampaignStatus.ACTIVE)
                .values(
                    raised_amount=Campaign.raised_amount + amount,
                    current_amount=Campaign.current_amount + amount,
                    total_donors=Campaign.total_donors + 1,
                    progress_percentage=(Campaign.raised_amount + amount) * 100 / Campaign.goal_amount
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("Campaign is not active", "CAMPAIGN_INACTIVE")

        await self.db.refresh(donation)
        logger.info(f"Donation {donation.id} of {amount} recorded for campaign {campaign_id}")

        await self.campaigns.recompute_progress(campaign_id)
        return donation

    async def list_for_campaign(self, campaign_id: int, limit: int = 50) -> List[Donation]:
        await self.campaigns.get_campaign(campaign_id)
        result = await self.db.execute(
            select(Donation)
            .where(Donation.campaign_id == campaign_id)
            .order_by(Donation.created_at.desc(), Donation.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_for_donor(
        self,
        donor_id: int,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Donation], int]:
        query = select(Donation).where(Donation.donor_id == donor_id)

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Donation.created_at.desc(), Donation.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def total_donated(self, donor_id: int) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Donation.amount), 0)).where(Donation.donor_id == donor_id)
        )
        return money(result.scalar())
