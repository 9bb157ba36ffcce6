from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from crowdlend.core.cache import Cache, CacheKeys, CacheTTL
from crowdlend.core.database import atomic
from crowdlend.core.exceptions import (
    ForbiddenError, InvalidAmountError, InvalidStateError, NotFoundError
)
from crowdlend.core.ledger import money, utcnow
from crowdlend.modules.loans import amortization
from crowdlend.modules.loans.models import (
    Loan, LoanFunding, LoanRepayment, LoanStatus, RepaymentStatus
)
from crowdlend.modules.loans.schemas import (
    LoanCreate, LoanCalculatorResponse, LoanResponse
)
from crowdlend.modules.transactions.models import TransactionType
from crowdlend.modules.transactions.services import TransactionService
from crowdlend.modules.users.services import UserService

logger = logging.getLogger(__name__)


class LoanService:
    """
    Loan lifecycle: requested -> funded (open to lenders) -> active -> completed.

    Requested loans may be rejected; active loans may be marked defaulted.
    The ``apply_*`` methods stage a change on the session without committing
    so callers such as the admin service can add their own rows to the same
    unit of work.
    """

    def __init__(self, db: AsyncSession, cache: Cache):
        self.db = db
        self.cache = cache
        self.ledger = TransactionService(db)

    # ============================================================
    # Lookups
    # ============================================================

    async def get_loan(self, loan_id: int) -> Loan:
        result = await self.db.execute(select(Loan).where(Loan.id == loan_id))
        loan = result.scalar_one_or_none()
        if not loan:
            raise NotFoundError("Loan not found", "LOAN_NOT_FOUND")
        return loan

    async def get_view(self, loan_id: int) -> LoanResponse:
        """Read-through cached read model"""
        key = CacheKeys.loan(loan_id)
        cached = await self.cache.get(key)
        if cached:
            return LoanResponse.model_validate(cached)

        view = LoanResponse.model_validate(await self.get_loan(loan_id))
        await self.cache.set(key, view.model_dump(mode="json"), CacheTTL.SHORT)
        return view

    async def list_loans(
        self,
        status: Optional[LoanStatus] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Loan], int]:
        query = select(Loan)
        if status:
            query = query.where(Loan.status == status)
        return await self._paginate(query, page, page_size)

    async def list_for_borrower(
        self,
        borrower_id: int,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Loan], int]:
        return await self._paginate(select(Loan).where(Loan.borrower_id == borrower_id), page, page_size)

    async def fundings(self, loan_id: int) -> List[LoanFunding]:
        await self.get_loan(loan_id)
        result = await self.db.execute(
            select(LoanFunding)
            .where(LoanFunding.loan_id == loan_id)
            .order_by(LoanFunding.created_at, LoanFunding.id)
        )
        return list(result.scalars().all())

    async def repayments(self, loan_id: int) -> List[LoanRepayment]:
        await self.get_loan(loan_id)
        result = await self.db.execute(
            select(LoanRepayment)
            .where(LoanRepayment.loan_id == loan_id)
            .order_by(LoanRepayment.emi_number)
        )
        return list(result.scalars().all())

    @staticmethod
    def calculate(principal: Decimal, interest_rate: Decimal, duration: int) -> LoanCalculatorResponse:
        """Quote a schedule starting today without persisting anything"""
        schedule = amortization.generate_schedule(principal, interest_rate, duration, utcnow())
        return LoanCalculatorResponse(
            principal=money(principal),
            interest_rate=interest_rate,
            duration=duration,
            monthly_payment=schedule[0].total_amount,
            schedule=schedule,
            **amortization.schedule_totals(schedule)
        )

    # ============================================================
    # Lifecycle
    # ============================================================

    async def request(self, borrower_id: int, data: LoanCreate) -> Loan:
        await UserService(self.db).require_user(borrower_id)

        loan = Loan(
            borrower_id=borrower_id,
            title=data.title,
            description=data.description,
            purpose=data.purpose,
            requested_amount=money(data.requested_amount),
            funded_amount=money(0),
            interest_rate=data.interest_rate,
            duration=data.duration,
            status=LoanStatus.REQUESTED
        )
        self.db.add(loan)
        await self.db.commit()
        await self.db.refresh(loan)

        logger.info(f"Loan {loan.id} requested by user {borrower_id} for {loan.requested_amount}")
        return loan

    async def apply_decision(
        self,
        loan_id: int,
        admin_id: int,
        approved: bool,
        reason: Optional[str] = None
    ) -> Loan:
        """Stage REQUESTED -> FUNDED (approved) or REJECTED"""
        loan = await self.get_loan(loan_id)
        if loan.status != LoanStatus.REQUESTED:
            raise InvalidStateError("Loan is not pending approval", "INVALID_STATUS")

        new_status = LoanStatus.FUNDED if approved else LoanStatus.REJECTED
        result = await self.db.execute(
            update(Loan)
            .where(Loan.id == loan_id, Loan.status == LoanStatus.REQUESTED)
            .values(
                status=new_status,
                approved_at=utcnow(),
                approved_by=admin_id,
                rejection_reason=None if approved else reason
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError("Loan is not pending approval", "INVALID_STATUS")

        logger.info(f"Loan {loan_id}: {LoanStatus.REQUESTED.value} -> {new_status.value} by admin {admin_id}")
        return loan

    async def decide(
        self,
        loan_id: int,
        admin_id: int,
        approved: bool,
        reason: Optional[str] = None
    ) -> Loan:
        async with atomic(self.db):
            loan = await self.apply_decision(loan_id, admin_id, approved, reason)
        return await self.reload(loan)

    async def fund(
        self,
        loan_id: int,
        lender_id: int,
        amount: Decimal,
        external_reference: Optional[str] = None
    ) -> Loan:
        """
        Contribute toward an approved loan.

        The increment, the funding row and its ledger transaction commit
        together. The contribution that fills the loan also flips it to
        ACTIVE and writes the repayment schedule; the guarded status update
        lets only one concurrent request do that.
        """
        amount = money(amount)
        if amount <= 0:
            raise InvalidAmountError("Funding amount must be positive", "INVALID_AMOUNT")

        loan = await self.get_loan(loan_id)
        if loan.status != LoanStatus.FUNDED:
            raise InvalidStateError("Loan is not open for funding", "LOAN_NOT_FUNDABLE")
        if money(loan.funded_amount) + amount > money(loan.requested_amount):
            raise InvalidAmountError("Funding exceeds the remaining loan amount", "OVERFUNDING")

        async with atomic(self.db):
            result = await self.db.execute(
                update(Loan)
                .where(
                    Loan.id == loan_id,
                    Loan.status == LoanStatus.FUNDED,
                    Loan.funded_amount + amount <= Loan.requested_amount
                )
                .values(funded_amount=Loan.funded_amount + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = await self._fetch_status(loan_id)
                if current != LoanStatus.FUNDED:
                    raise InvalidStateError("Loan is not open for funding", "LOAN_NOT_FUNDABLE")
                raise InvalidAmountError("Funding exceeds the remaining loan amount", "OVERFUNDING")

            self.db.add(LoanFunding(
                loan_id=loan_id,
                lender_id=lender_id,
                amount=amount,
                external_reference=external_reference
            ))
            self.ledger.record(
                TransactionType.LOAN_FUNDING,
                amount,
                user_id=lender_id,
                reference_type="loan",
                reference_id=loan_id,
                description=f"Funding for loan: {loan.title}",
                external_reference=external_reference
            )

            funded = await self.db.execute(select(Loan.funded_amount).where(Loan.id == loan_id))
            if money(funded.scalar()) >= money(loan.requested_amount):
                await self._activate(loan)

        logger.info(f"Loan {loan_id} funded {amount} by lender {lender_id}")
        return await self.reload(loan)

    async def record_payment(
        self,
        loan_id: int,
        repayment_id: int,
        paid_amount: Decimal,
        payer_id: Optional[int] = None,
        external_reference: Optional[str] = None
    ) -> LoanRepayment:
        """
        Settle one installment.

        Any positive amount marks the installment PAID. Paying the last
        pending installment completes the loan in the same unit of work.
        """
        paid_amount = money(paid_amount)
        if paid_amount <= 0:
            raise InvalidAmountError("Payment amount must be positive", "INVALID_AMOUNT")

        result = await self.db.execute(
            select(LoanRepayment).where(LoanRepayment.id == repayment_id, LoanRepayment.loan_id == loan_id)
        )
        repayment = result.scalar_one_or_none()
        if not repayment:
            raise NotFoundError("Repayment not found", "REPAYMENT_NOT_FOUND")

        loan = await self.get_loan(loan_id)
        if payer_id is not None and payer_id != loan.borrower_id:
            raise ForbiddenError("Only the borrower can repay this loan", "FORBIDDEN")
        if loan.status != LoanStatus.ACTIVE:
            raise InvalidStateError("Loan is not active", "LOAN_NOT_ACTIVE")
        if repayment.status == RepaymentStatus.PAID:
            raise InvalidStateError("Installment already paid", "ALREADY_PAID")

        if paid_amount < money(repayment.total_amount):
            logger.warning(
                f"Installment {repayment.emi_number} of loan {loan_id} paid short: "
                f"{paid_amount} < {repayment.total_amount}"
            )

        async with atomic(self.db):
            result = await self.db.execute(
                update(LoanRepayment)
                .where(LoanRepayment.id == repayment_id, LoanRepayment.status == RepaymentStatus.PENDING)
                .values(
                    status=RepaymentStatus.PAID,
                    paid_amount=paid_amount,
                    paid_at=utcnow(),
                    external_reference=external_reference
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("Installment already paid", "ALREADY_PAID")

            self.ledger.record(
                TransactionType.LOAN_REPAYMENT,
                paid_amount,
                user_id=loan.borrower_id,
                reference_type="loan",
                reference_id=loan_id,
                description=f"EMI {repayment.emi_number} for loan: {loan.title}",
                external_reference=external_reference
            )

            pending = await self.db.execute(
                select(func.count(LoanRepayment.id)).where(
                    LoanRepayment.loan_id == loan_id,
                    LoanRepayment.status == RepaymentStatus.PENDING
                )
            )
            if pending.scalar() == 0:
                await self._guarded_transition(
                    loan_id, LoanStatus.ACTIVE, LoanStatus.COMPLETED, completed_at=utcnow()
                )

        await self.db.refresh(repayment)
        await self.reload(loan)
        logger.info(f"Installment {repayment.emi_number} of loan {loan_id} paid")
        return repayment

    async def apply_default(self, loan_id: int, admin_id: int, reason: Optional[str] = None) -> Loan:
        """Stage ACTIVE -> DEFAULTED"""
        loan = await self.get_loan(loan_id)
        if loan.status != LoanStatus.ACTIVE:
            raise InvalidStateError("Only active loans can be marked defaulted", "INVALID_STATUS")

        await self._guarded_transition(loan_id, LoanStatus.ACTIVE, LoanStatus.DEFAULTED, defaulted_at=utcnow())
        logger.info(f"Loan {loan_id} marked defaulted by admin {admin_id}: {reason}")
        return loan

    async def mark_defaulted(self, loan_id: int, admin_id: int, reason: Optional[str] = None) -> Loan:
        async with atomic(self.db):
            loan = await self.apply_default(loan_id, admin_id, reason)
        return await self.reload(loan)

    # ============================================================
    # Helpers
    # ============================================================

    async def _activate(self, loan: Loan) -> None:
        """FUNDED -> ACTIVE plus the repayment schedule, exactly once"""
        start_date = utcnow()
        result = await self.db.execute(
            update(Loan)
            .where(
                Loan.id == loan.id,
                Loan.status == LoanStatus.FUNDED,
                Loan.funded_amount >= Loan.requested_amount
            )
            .values(status=LoanStatus.ACTIVE, start_date=start_date)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return

        schedule = amortization.generate_schedule(
            loan.requested_amount, loan.interest_rate, loan.duration, start_date
        )
        self.db.add_all([
            LoanRepayment(
                loan_id=loan.id,
                status=RepaymentStatus.PENDING,
                **installment.model_dump()
            )
            for installment in schedule
        ])
        logger.info(
            f"Loan {loan.id}: {LoanStatus.FUNDED.value} -> {LoanStatus.ACTIVE.value}, "
            f"{len(schedule)} installments scheduled"
        )

    async def _guarded_transition(
        self,
        loan_id: int,
        from_status: LoanStatus,
        to_status: LoanStatus,
        **values
    ) -> None:
        result = await self.db.execute(
            update(Loan)
            .where(Loan.id == loan_id, Loan.status == from_status)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError(f"Loan is not {from_status.value.lower()}", "INVALID_STATUS")
        logger.info(f"Loan {loan_id}: {from_status.value} -> {to_status.value}")

    async def _fetch_status(self, loan_id: int) -> LoanStatus:
        result = await self.db.execute(select(Loan.status).where(Loan.id == loan_id))
        return result.scalar_one()

    async def reload(self, loan: Loan) -> Loan:
        await self.db.refresh(loan)
        await self.cache.delete(CacheKeys.loan(loan.id))
        return loan

    async def _paginate(self, query, page: int, page_size: int) -> Tuple[List[Loan], int]:
        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Loan.created_at.desc(), Loan.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total
