"""
Unit tests for EMI schedule generation
"""
import pytest
import pydantic
from datetime import datetime, timezone
from decimal import Decimal

from crowdlend.core.exceptions import ValidationError
from crowdlend.modules.loans.amortization import (
    calculate_monthly_payment, generate_schedule, schedule_totals
)

START = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)


class TestMonthlyPayment:
    """Tests for the fixed payment formula"""

    @pytest.mark.unit
    def test_standard_payment(self):
        """12000 at 12% for 12 months"""
        payment = calculate_monthly_payment(Decimal("12000.00"), Decimal("12.00"), 12)
        assert payment == Decimal("1066.19")

    @pytest.mark.unit
    def test_zero_interest_payment(self):
        payment = calculate_monthly_payment(Decimal("1200.00"), Decimal("0"), 12)
        assert payment == Decimal("100.00")

    @pytest.mark.unit
    def test_single_month_payment(self):
        """One installment repays principal plus one month of interest"""
        payment = calculate_monthly_payment(Decimal("1000.00"), Decimal("12.00"), 1)
        assert payment == Decimal("1010.00")

    @pytest.mark.unit
    @pytest.mark.parametrize("principal, rate, duration", [
        (Decimal("0"), Decimal("12"), 12),
        (Decimal("-100"), Decimal("12"), 12),
        (Decimal("1000"), Decimal("12"), 0),
        (Decimal("1000"), Decimal("-1"), 12),
    ])
    def test_invalid_terms_rejected(self, principal, rate, duration):
        with pytest.raises(ValidationError):
            calculate_monthly_payment(principal, rate, duration)


class TestGenerateSchedule:
    """Tests for amortization schedule generation"""

    @pytest.mark.unit
    def test_standard_schedule(self):
        """EMI(12000, 12%, 12): identical totals, principal sums to the loan"""
        schedule = generate_schedule(Decimal("12000.00"), Decimal("12.00"), 12, START)

        assert len(schedule) == 12
        assert [i.emi_number for i in schedule] == list(range(1, 13))
        assert {i.total_amount for i in schedule} == {Decimal("1066.19")}
        assert sum(i.principal for i in schedule) == Decimal("12000.00")
        assert schedule[-1].balance_after == Decimal("0.00")

        # First month: interest on the full balance
        assert schedule[0].interest == Decimal("120.00")
        assert schedule[0].principal == Decimal("946.19")
        assert schedule[0].balance_after == Decimal("11053.81")

    @pytest.mark.unit
    def test_components_add_up(self):
        schedule = generate_schedule(Decimal("12000.00"), Decimal("12.00"), 12, START)

        for installment in schedule:
            assert installment.principal + installment.interest == installment.total_amount
            assert installment.interest >= 0

        # Final installment takes whatever balance is left
        assert schedule[-1].principal == schedule[-2].balance_after

    @pytest.mark.unit
    def test_balance_decreases(self):
        schedule = generate_schedule(Decimal("5000.00"), Decimal("15.00"), 24, START)
        balances = [i.balance_after for i in schedule]
        assert balances == sorted(balances, reverse=True)
        assert balances[-1] == Decimal("0.00")

    @pytest.mark.unit
    def test_zero_interest_schedule(self):
        """EMI(1200, 0%, 12): twelve flat installments of 100"""
        schedule = generate_schedule(Decimal("1200.00"), Decimal("0"), 12, START)

        assert len(schedule) == 12
        for installment in schedule:
            assert installment.principal == Decimal("100.00")
            assert installment.interest == Decimal("0.00")
            assert installment.total_amount == Decimal("100.00")

    @pytest.mark.unit
    def test_zero_interest_rounding_residual(self):
        """Payment rounds down; the last installment collects the extra cent"""
        schedule = generate_schedule(Decimal("1000.00"), Decimal("0"), 3, START)

        assert [i.total_amount for i in schedule] == [
            Decimal("333.33"), Decimal("333.33"), Decimal("333.34")
        ]
        assert schedule[-1].interest == Decimal("0.00")
        assert sum(i.principal for i in schedule) == Decimal("1000.00")

    @pytest.mark.unit
    def test_due_dates_follow_calendar_months(self):
        """Month-end start dates clamp to the end of shorter months"""
        schedule = generate_schedule(Decimal("1200.00"), Decimal("6.00"), 3, START)

        assert schedule[0].due_date == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)
        assert schedule[1].due_date == datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)
        assert schedule[2].due_date == datetime(2026, 4, 30, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.unit
    def test_installments_are_immutable(self):
        schedule = generate_schedule(Decimal("1200.00"), Decimal("6.00"), 3, START)

        with pytest.raises(pydantic.ValidationError):
            schedule[0].total_amount = Decimal("1.00")

    @pytest.mark.unit
    def test_schedule_totals(self):
        schedule = generate_schedule(Decimal("12000.00"), Decimal("12.00"), 12, START)
        totals = schedule_totals(schedule)

        assert totals["total_repayment"] == Decimal("1066.19") * 12
        assert totals["total_interest"] == totals["total_repayment"] - Decimal("12000.00")

    @pytest.mark.unit
    def test_invalid_duration_rejected(self):
        with pytest.raises(ValidationError):
            generate_schedule(Decimal("1000.00"), Decimal("5"), 0, START)
