# Loans module
from crowdlend.modules.loans.models import (
    Loan, LoanFunding, LoanRepayment, LoanStatus, RepaymentStatus
)

__all__ = ["Loan", "LoanFunding", "LoanRepayment", "LoanStatus", "RepaymentStatus"]
