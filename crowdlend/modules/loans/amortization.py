"""
EMI (equated monthly installment) schedule generation.

Pure functions over ``Decimal``; nothing here touches the database.
"""
from datetime import datetime
from decimal import Decimal
from typing import List

from crowdlend.core.exceptions import ValidationError
from crowdlend.core.ledger import ZERO, HUNDRED, add_months, money, to_decimal
from crowdlend.modules.loans.schemas import Installment

MONTHS_PER_YEAR = 12


def monthly_rate(annual_rate_percent) -> Decimal:
    return to_decimal(annual_rate_percent) / HUNDRED / MONTHS_PER_YEAR


def calculate_monthly_payment(principal, annual_rate_percent, duration_months: int) -> Decimal:
    """
    Fixed monthly payment P*r*(1+r)^n / ((1+r)^n - 1), rounded to cents.

    A zero rate degenerates to P / n.
    """
    _validate_terms(principal, annual_rate_percent, duration_months)
    principal = to_decimal(principal)
    rate = monthly_rate(annual_rate_percent)

    if rate == 0:
        return money(principal / duration_months)

    growth = (1 + rate) ** duration_months
    return money(principal * rate * growth / (growth - 1))


def generate_schedule(
    principal,
    annual_rate_percent,
    duration_months: int,
    start: datetime
) -> List[Installment]:
    """
    Build the full amortization schedule.

    Installment k is due ``k`` calendar months after ``start``. The last
    installment takes whatever balance is left so principal components sum
    exactly to the loan amount; its total stays equal to the fixed payment
    and the interest column absorbs the rounding residual.
    """
    payment = calculate_monthly_payment(principal, annual_rate_percent, duration_months)
    rate = monthly_rate(annual_rate_percent)
    remaining = money(principal)

    schedule = []
    for emi_number in range(1, duration_months + 1):
        interest = money(remaining * rate)

        if emi_number == duration_months:
            principal_part = remaining
            total = payment
            interest = payment - principal_part
            if interest < 0:
                # Payment rounded down below the leftover balance (zero-rate loans)
                interest = money(remaining * rate)
                total = principal_part + interest
        else:
            principal_part = payment - interest
            total = payment

        remaining = remaining - principal_part

        schedule.append(Installment(
            emi_number=emi_number,
            due_date=add_months(start, emi_number),
            principal=money(principal_part),
            interest=money(interest),
            total_amount=money(total),
            balance_after=money(remaining) if emi_number < duration_months else ZERO
        ))

    return schedule


def schedule_totals(schedule: List[Installment]) -> dict:
    total_interest = sum((i.interest for i in schedule), ZERO)
    total_repayment = sum((i.total_amount for i in schedule), ZERO)
    return {"total_interest": money(total_interest), "total_repayment": money(total_repayment)}


def _validate_terms(principal, annual_rate_percent, duration_months: int) -> None:
    if to_decimal(principal) <= 0:
        raise ValidationError("Principal must be positive", "INVALID_PRINCIPAL")
    if duration_months < 1:
        raise ValidationError("Duration must be at least one month", "INVALID_DURATION")
    if to_decimal(annual_rate_percent) < 0:
        raise ValidationError("Interest rate cannot be negative", "INVALID_RATE")
