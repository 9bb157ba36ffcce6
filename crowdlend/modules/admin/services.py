from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from typing import List, Optional, Tuple
import json
import logging

from crowdlend.core.cache import Cache
from crowdlend.core.database import atomic
from crowdlend.core.exceptions import InvalidStateError, ValidationError
from crowdlend.core.ledger import money, percentage
from crowdlend.modules.admin.models import AdminAuditLog, AdminAction
from crowdlend.modules.admin.schemas import DashboardStats
from crowdlend.modules.campaigns.models import Campaign, CampaignStatus
from crowdlend.modules.campaigns.services import CampaignService
from crowdlend.modules.donations.models import Donation
from crowdlend.modules.loans.models import Loan, LoanFunding, LoanStatus
from crowdlend.modules.loans.services import LoanService
from crowdlend.modules.transactions.models import Transaction
from crowdlend.modules.users.models import User
from crowdlend.modules.users.services import UserService

logger = logging.getLogger(__name__)


class AdminService:
    """Service layer for admin operations; every change is audited in the same commit"""

    def __init__(self, db: AsyncSession, cache: Cache):
        self.db = db
        self.campaigns = CampaignService(db, cache)
        self.loans = LoanService(db, cache)
        self.users = UserService(db)

    # ============================================================
    # Audit Logging
    # ============================================================

    def log_action(
        self,
        admin_id: int,
        action: AdminAction,
        entity_type: str,
        entity_id: int,
        changes: Optional[dict] = None,
        reason: Optional[str] = None
    ) -> AdminAuditLog:
        """Add an audit row to the current unit of work (not committed here)"""
        log = AdminAuditLog(
            admin_id=admin_id,
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=json.dumps(changes) if changes else None,
            reason=reason
        )
        self.db.add(log)
        return log

    async def audit_logs(self, limit: int = 50, offset: int = 0) -> Tuple[List[AdminAuditLog], int]:
        total_result = await self.db.execute(select(func.count(AdminAuditLog.id)))
        total = total_result.scalar()

        result = await self.db.execute(
            select(AdminAuditLog)
            .order_by(AdminAuditLog.created_at.desc(), AdminAuditLog.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ============================================================
    # Dashboard Statistics
    # ============================================================

    async def dashboard_stats(self) -> DashboardStats:
        total_users = await self.db.execute(select(func.count(User.id)))
        blocked_users = await self.db.execute(
            select(func.count(User.id)).where(User.is_blocked.is_(True))
        )

        total_campaigns = await self.db.execute(select(func.count(Campaign.id)))
        active_campaigns = await self.db.execute(
            select(func.count(Campaign.id)).where(Campaign.status == CampaignStatus.ACTIVE)
        )
        pending_campaigns = await self.db.execute(
            select(func.count(Campaign.id)).where(Campaign.status == CampaignStatus.DRAFT)
        )
        funds_raised = await self.db.execute(select(func.coalesce(func.sum(Donation.amount), 0)))

        total_loans = await self.db.execute(select(func.count(Loan.id)))
        pending_loans = await self.db.execute(
            select(func.count(Loan.id)).where(Loan.status == LoanStatus.REQUESTED)
        )
        active_loans = await self.db.execute(
            select(func.count(Loan.id)).where(Loan.status == LoanStatus.ACTIVE)
        )
        defaulted_loans = await self.db.execute(
            select(func.count(Loan.id)).where(Loan.status == LoanStatus.DEFAULTED)
        )
        total_loaned = await self.db.execute(select(func.coalesce(func.sum(LoanFunding.amount), 0)))

        total_transactions = await self.db.execute(select(func.count(Transaction.id)))

        loan_count = total_loans.scalar() or 0
        defaulted_count = defaulted_loans.scalar() or 0

        return DashboardStats(
            total_users=total_users.scalar() or 0,
            blocked_users=blocked_users.scalar() or 0,
            total_campaigns=total_campaigns.scalar() or 0,
            active_campaigns=active_campaigns.scalar() or 0,
            pending_campaigns=pending_campaigns.scalar() or 0,
            total_funds_raised=money(funds_raised.scalar()),
            total_loans=loan_count,
            pending_loans=pending_loans.scalar() or 0,
            active_loans=active_loans.scalar() or 0,
            defaulted_loans=defaulted_count,
            default_rate=percentage(defaulted_count, loan_count),
            total_loaned=money(total_loaned.scalar()),
            total_transactions=total_transactions.scalar() or 0
        )

    # ============================================================
    # Campaign Moderation
    # ============================================================

    async def pending_campaigns(self) -> List[Campaign]:
        result = await self.db.execute(
            select(Campaign)
            .where(Campaign.status == CampaignStatus.DRAFT)
            .order_by(Campaign.created_at.desc(), Campaign.id.desc())
        )
        return list(result.scalars().all())

    async def approve_campaign(self, admin_id: int, campaign_id: int) -> Campaign:
        return await self._moderate_campaign(
            admin_id, campaign_id, CampaignStatus.ACTIVE, AdminAction.APPROVE_CAMPAIGN
        )

    async def reject_campaign(self, admin_id: int, campaign_id: int, reason: str) -> Campaign:
        return await self._moderate_campaign(
            admin_id, campaign_id, CampaignStatus.CANCELLED, AdminAction.REJECT_CAMPAIGN, reason
        )

    async def _moderate_campaign(
        self,
        admin_id: int,
        campaign_id: int,
        new_status: CampaignStatus,
        action: AdminAction,
        reason: Optional[str] = None
    ) -> Campaign:
        async with atomic(self.db):
            campaign = await self.campaigns.get_campaign(campaign_id)
            if campaign.status != CampaignStatus.DRAFT:
                raise InvalidStateError("Only draft campaigns can be moderated", "INVALID_STATUS")

            result = await self.db.execute(
                update(Campaign)
                .where(Campaign.id == campaign_id, Campaign.status == CampaignStatus.DRAFT)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("Only draft campaigns can be moderated", "INVALID_STATUS")

            self.log_action(
                admin_id,
                action,
                "campaign",
                campaign_id,
                changes={"status": f"{CampaignStatus.DRAFT.value} -> {new_status.value}"},
                reason=reason
            )

        await self.db.refresh(campaign)
        await self.campaigns.invalidate(campaign_id)
        logger.info(f"Admin {admin_id}: {action.value} campaign {campaign_id}")
        return campaign

    # ============================================================
    # Loan Oversight
    # ============================================================

    async def pending_loans(self) -> List[Loan]:
        result = await self.db.execute(
            select(Loan)
            .where(Loan.status == LoanStatus.REQUESTED)
            .order_by(Loan.created_at.desc(), Loan.id.desc())
        )
        return list(result.scalars().all())

    async def decide_loan(
        self,
        admin_id: int,
        loan_id: int,
        approved: bool,
        reason: Optional[str] = None
    ) -> Loan:
        new_status = LoanStatus.FUNDED if approved else LoanStatus.REJECTED
        async with atomic(self.db):
            loan = await self.loans.apply_decision(loan_id, admin_id, approved, reason)
            self.log_action(
                admin_id,
                AdminAction.APPROVE_LOAN if approved else AdminAction.REJECT_LOAN,
                "loan",
                loan_id,
                changes={"status": f"{LoanStatus.REQUESTED.value} -> {new_status.value}"},
                reason=reason
            )
        return await self.loans.reload(loan)

    async def default_loan(self, admin_id: int, loan_id: int, reason: Optional[str] = None) -> Loan:
        async with atomic(self.db):
            loan = await self.loans.apply_default(loan_id, admin_id, reason)
            self.log_action(
                admin_id,
                AdminAction.DEFAULT_LOAN,
                "loan",
                loan_id,
                changes={"status": f"{LoanStatus.ACTIVE.value} -> {LoanStatus.DEFAULTED.value}"},
                reason=reason
            )
        return await self.loans.reload(loan)

    # ============================================================
    # User Management
    # ============================================================

    async def block_user(self, admin_id: int, user_id: int, reason: str) -> User:
        if admin_id == user_id:
            raise ValidationError("Admins cannot block themselves", "CANNOT_BLOCK_SELF")

        async with atomic(self.db):
            user = await self.users.require_user(user_id)
            changes = {
                "is_blocked": f"{user.is_blocked} -> True",
                "blocked_reason": f"{user.blocked_reason} -> {reason}"
            }
            user.is_blocked = True
            user.blocked_reason = reason
            self.log_action(
                admin_id,
                AdminAction.BLOCK_USER,
                "user",
                user_id,
                changes=changes,
                reason=reason
            )

        await self.db.refresh(user)
        logger.info(f"Admin {admin_id} blocked user {user_id}")
        return user

    async def unblock_user(self, admin_id: int, user_id: int) -> User:
        async with atomic(self.db):
            user = await self.users.require_user(user_id)
            changes = {
                "is_blocked": f"{user.is_blocked} -> False",
                "blocked_reason": f"{user.blocked_reason} -> None"
            }
            user.is_blocked = False
            user.blocked_reason = None
            self.log_action(
                admin_id,
                AdminAction.UNBLOCK_USER,
                "user",
                user_id,
                changes=changes
            )

        await self.db.refresh(user)
        logger.info(f"Admin {admin_id} unblocked user {user_id}")
        return user
