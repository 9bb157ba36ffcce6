"""
Tests for the loan lifecycle and repayment tracker
"""
import pytest
from decimal import Decimal
from sqlalchemy import select, func, update

from crowdlend.core.exceptions import (
    ForbiddenError, InvalidAmountError, InvalidStateError, NotFoundError, ValidationError
)
from crowdlend.modules.loans.models import Loan, LoanFunding, LoanRepayment, LoanStatus, RepaymentStatus
from crowdlend.modules.loans.services import LoanService
from crowdlend.modules.transactions.models import Transaction, TransactionType
from tests.conftest import loan_payload, run_before_first_update


async def count_repayments(db_session, loan_id: int) -> int:
    result = await db_session.execute(
        select(func.count(LoanRepayment.id)).where(LoanRepayment.loan_id == loan_id)
    )
    return result.scalar()


async def assert_nothing_funded(db_session, loan_id: int):
    fundings = await db_session.execute(select(LoanFunding).where(LoanFunding.loan_id == loan_id))
    assert fundings.scalars().all() == []
    transactions = await db_session.execute(select(Transaction))
    assert transactions.scalars().all() == []
    assert await count_repayments(db_session, loan_id) == 0


class TestLoanCalculations:
    """Tests for the quote endpoint logic"""

    @pytest.mark.unit
    def test_calculate(self):
        response = LoanService.calculate(Decimal("12000.00"), Decimal("12.00"), 12)

        assert response.principal == Decimal("12000.00")
        assert response.duration == 12
        assert response.monthly_payment == Decimal("1066.19")
        assert response.total_repayment == response.principal + response.total_interest
        assert len(response.schedule) == 12

    @pytest.mark.unit
    def test_calculate_rejects_bad_terms(self):
        with pytest.raises(ValidationError):
            LoanService.calculate(Decimal("1000.00"), Decimal("-1"), 12)


class TestLoanRequest:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_request_loan(self, db_session, cache, borrower):
        loan = await LoanService(db_session, cache).request(borrower.id, loan_payload())

        assert loan.status == LoanStatus.REQUESTED
        assert loan.funded_amount == Decimal("0.00")
        assert loan.requested_amount == Decimal("12000.00")
        assert loan.borrower_id == borrower.id

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_request_for_unknown_borrower(self, db_session, cache):
        with pytest.raises(NotFoundError):
            await LoanService(db_session, cache).request(9999, loan_payload())

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_borrower_listing(self, db_session, cache, borrower, requested_loan):
        loans, total = await LoanService(db_session, cache).list_for_borrower(borrower.id)
        assert total == 1
        assert loans[0].id == requested_loan.id


class TestLoanDecision:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_approve_opens_funding(self, db_session, cache, admin, requested_loan):
        loan = await LoanService(db_session, cache).decide(requested_loan.id, admin.id, approved=True)

        assert loan.status == LoanStatus.FUNDED
        assert loan.approved_by == admin.id
        assert loan.approved_at is not None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_reject_records_reason(self, db_session, cache, admin, requested_loan):
        loan = await LoanService(db_session, cache).decide(
            requested_loan.id, admin.id, approved=False, reason="Insufficient history"
        )

        assert loan.status == LoanStatus.REJECTED
        assert loan.rejection_reason == "Insufficient history"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_decide_twice_rejected(self, db_session, cache, admin, open_loan):
        with pytest.raises(InvalidStateError):
            await LoanService(db_session, cache).decide(open_loan.id, admin.id, approved=False)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_decide_unknown_loan(self, db_session, cache, admin):
        with pytest.raises(NotFoundError):
            await LoanService(db_session, cache).decide(9999, admin.id, approved=True)


class TestLoanFunding:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_partial_funding(self, db_session, cache, lender, open_loan):
        loan = await LoanService(db_session, cache).fund(open_loan.id, lender.id, Decimal("4000.00"))

        assert loan.funded_amount == Decimal("4000.00")
        assert loan.status == LoanStatus.FUNDED
        assert loan.start_date is None
        assert await count_repayments(db_session, loan.id) == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_full_funding_activates_loan(self, db_session, cache, lender, second_lender, open_loan):
        service = LoanService(db_session, cache)
        await service.fund(open_loan.id, lender.id, Decimal("7000.00"))
        loan = await service.fund(open_loan.id, second_lender.id, Decimal("5000.00"))

        assert loan.status == LoanStatus.ACTIVE
        assert loan.funded_amount == loan.requested_amount
        assert loan.start_date is not None

        repayments = await service.repayments(loan.id)
        assert [r.emi_number for r in repayments] == list(range(1, 13))
        assert all(r.status == RepaymentStatus.PENDING for r in repayments)
        assert sum(r.principal for r in repayments) == Decimal("12000.00")

        fundings = await service.fundings(loan.id)
        assert [f.lender_id for f in fundings] == [lender.id, second_lender.id]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_funding_writes_ledger_rows(self, db_session, cache, lender, open_loan):
        await LoanService(db_session, cache).fund(open_loan.id, lender.id, Decimal("3000.00"), "wire-42")

        result = await db_session.execute(
            select(Transaction).where(Transaction.transaction_type == TransactionType.LOAN_FUNDING)
        )
        txn = result.scalar_one()
        assert txn.user_id == lender.id
        assert txn.amount == Decimal("3000.00")
        assert txn.reference_id == open_loan.id
        assert txn.external_reference == "wire-42"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_overfunding_rejected(self, db_session, cache, lender, second_lender, open_loan):
        service = LoanService(db_session, cache)
        await service.fund(open_loan.id, lender.id, Decimal("10000.00"))

        with pytest.raises(InvalidAmountError):
            await service.fund(open_loan.id, second_lender.id, Decimal("2000.01"))

        loan = await service.get_loan(open_loan.id)
        await db_session.refresh(loan)
        assert loan.funded_amount == Decimal("10000.00")
        assert loan.status == LoanStatus.FUNDED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_funding_requested_loan_rejected(self, db_session, cache, lender, requested_loan):
        with pytest.raises(InvalidStateError):
            await LoanService(db_session, cache).fund(requested_loan.id, lender.id, Decimal("100.00"))

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_schedule_generated_exactly_once(self, db_session, cache, second_lender, active_loan):
        service = LoanService(db_session, cache)
        assert await count_repayments(db_session, active_loan.id) == 12

        with pytest.raises(InvalidStateError):
            await service.fund(active_loan.id, second_lender.id, Decimal("1.00"))

        assert await count_repayments(db_session, active_loan.id) == 12

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_non_positive_funding_rejected(self, db_session, cache, lender, open_loan):
        with pytest.raises(InvalidAmountError):
            await LoanService(db_session, cache).fund(open_loan.id, lender.id, Decimal("0"))

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_loan_filled_mid_funding_rolls_back(self, db_session, cache, monkeypatch, lender, open_loan):
        loan_id, lender_id = open_loan.id, lender.id

        async def fund_elsewhere():
            await db_session.execute(
                update(Loan)
                .where(Loan.id == loan_id)
                .values(funded_amount=Decimal("11000.00"))
                .execution_options(synchronize_session=False)
            )

        # The in-memory check still sees an empty loan
        run_before_first_update(monkeypatch, db_session, fund_elsewhere)

        with pytest.raises(InvalidAmountError) as exc_info:
            await LoanService(db_session, cache).fund(loan_id, lender_id, Decimal("2000.00"))
        assert exc_info.value.code == "OVERFUNDING"

        await assert_nothing_funded(db_session, loan_id)
        loan = await db_session.get(Loan, loan_id)
        assert loan.funded_amount == Decimal("0.00")
        assert loan.status == LoanStatus.FUNDED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_loan_closed_mid_funding_rolls_back(self, db_session, cache, monkeypatch, lender, open_loan):
        loan_id, lender_id = open_loan.id, lender.id

        async def reject_elsewhere():
            await db_session.execute(
                update(Loan)
                .where(Loan.id == loan_id)
                .values(status=LoanStatus.REJECTED)
                .execution_options(synchronize_session=False)
            )

        run_before_first_update(monkeypatch, db_session, reject_elsewhere)

        with pytest.raises(InvalidStateError) as exc_info:
            await LoanService(db_session, cache).fund(loan_id, lender_id, Decimal("500.00"))
        assert exc_info.value.code == "LOAN_NOT_FUNDABLE"

        await assert_nothing_funded(db_session, loan_id)
        loan = await db_session.get(Loan, loan_id)
        assert loan.funded_amount == Decimal("0.00")
        assert loan.status == LoanStatus.FUNDED


class TestRepayments:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_pay_one_installment(self, db_session, cache, borrower, active_loan):
        service = LoanService(db_session, cache)
        first = (await service.repayments(active_loan.id))[0]

        paid = await service.record_payment(
            active_loan.id, first.id, first.total_amount, payer_id=borrower.id
        )

        assert paid.status == RepaymentStatus.PAID
        assert paid.paid_amount == first.total_amount
        assert paid.paid_at is not None

        loan = await service.get_loan(active_loan.id)
        assert loan.status == LoanStatus.ACTIVE

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_paying_every_installment_completes_loan(self, db_session, cache, borrower, active_loan):
        service = LoanService(db_session, cache)

        for repayment in await service.repayments(active_loan.id):
            await service.record_payment(active_loan.id, repayment.id, repayment.total_amount, payer_id=borrower.id)

        loan = await service.get_loan(active_loan.id)
        assert loan.status == LoanStatus.COMPLETED
        assert loan.completed_at is not None

        result = await db_session.execute(
            select(func.count(Transaction.id)).where(Transaction.transaction_type == TransactionType.LOAN_REPAYMENT)
        )
        assert result.scalar() == 12

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_paying_twice_rejected(self, db_session, cache, borrower, active_loan):
        service = LoanService(db_session, cache)
        first = (await service.repayments(active_loan.id))[0]
        await service.record_payment(active_loan.id, first.id, first.total_amount, payer_id=borrower.id)

        with pytest.raises(InvalidStateError):
            await service.record_payment(active_loan.id, first.id, first.total_amount, payer_id=borrower.id)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_short_payment_still_marks_paid(self, db_session, cache, borrower, active_loan):
        service = LoanService(db_session, cache)
        first = (await service.repayments(active_loan.id))[0]

        paid = await service.record_payment(active_loan.id, first.id, Decimal("10.00"), payer_id=borrower.id)

        assert paid.status == RepaymentStatus.PAID
        assert paid.paid_amount == Decimal("10.00")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_only_borrower_can_pay(self, db_session, cache, lender, active_loan):
        service = LoanService(db_session, cache)
        first = (await service.repayments(active_loan.id))[0]

        with pytest.raises(ForbiddenError):
            await service.record_payment(active_loan.id, first.id, first.total_amount, payer_id=lender.id)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_installment_of_other_loan_not_found(self, db_session, cache, borrower, active_loan):
        service = LoanService(db_session, cache)
        other = await service.request(borrower.id, loan_payload(title="Delivery van"))
        first = (await service.repayments(active_loan.id))[0]

        with pytest.raises(NotFoundError):
            await service.record_payment(other.id, first.id, first.total_amount, payer_id=borrower.id)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_defaulted_loan_cannot_be_paid(self, db_session, cache, admin, borrower, active_loan):
        service = LoanService(db_session, cache)
        first = (await service.repayments(active_loan.id))[0]
        await service.mark_defaulted(active_loan.id, admin.id, "Missed three installments")

        with pytest.raises(InvalidStateError):
            await service.record_payment(active_loan.id, first.id, first.total_amount, payer_id=borrower.id)


class TestDefault:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_mark_active_loan_defaulted(self, db_session, cache, admin, active_loan):
        loan = await LoanService(db_session, cache).mark_defaulted(active_loan.id, admin.id, "No contact")

        assert loan.status == LoanStatus.DEFAULTED
        assert loan.defaulted_at is not None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_only_active_loans_default(self, db_session, cache, admin, open_loan):
        with pytest.raises(InvalidStateError):
            await LoanService(db_session, cache).mark_defaulted(open_loan.id, admin.id, "No contact")
