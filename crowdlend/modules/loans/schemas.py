from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from crowdlend.modules.loans.models import LoanStatus, RepaymentStatus


class LoanCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20)
    requested_amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    interest_rate: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    duration: int = Field(..., ge=1, le=600, description="Months")
    purpose: str = Field(..., min_length=10, max_length=500)


class LoanDecision(BaseModel):
    approved: bool
    reason: Optional[str] = None


class LoanFundRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    external_reference: Optional[str] = Field(None, max_length=100)


class RepaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    external_reference: Optional[str] = Field(None, max_length=100)


class LoanCalculatorRequest(BaseModel):
    principal: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    interest_rate: Decimal = Field(..., ge=0, le=100)
    duration: int = Field(..., ge=1, le=600)


class Installment(BaseModel):
    """One row of an amortization schedule"""
    emi_number: int
    due_date: datetime
    principal: Decimal
    interest: Decimal
    total_amount: Decimal
    balance_after: Decimal

    class Config:
        frozen = True


class LoanCalculatorResponse(BaseModel):
    principal: Decimal
    interest_rate: Decimal
    duration: int
    monthly_payment: Decimal
    total_interest: Decimal
    total_repayment: Decimal
    schedule: List[Installment]


class LoanResponse(BaseModel):
    id: int
    borrower_id: int
    title: str
    description: str
    purpose: str
    requested_amount: Decimal
    funded_amount: Decimal
    interest_rate: Decimal
    duration: int
    status: LoanStatus
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    start_date: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoanListResponse(BaseModel):
    loans: List[LoanResponse]
    total: int
    page: int
    page_size: int


class LoanFundingResponse(BaseModel):
    id: int
    loan_id: int
    lender_id: int
    amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class LoanRepaymentResponse(BaseModel):
    id: int
    loan_id: int
    emi_number: int
    due_date: datetime
    principal: Decimal
    interest: Decimal
    total_amount: Decimal
    balance_after: Decimal
    status: RepaymentStatus
    paid_amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True
