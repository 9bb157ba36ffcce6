from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import (
    get_cache, get_current_active_user, require_admin, require_roles
)
from crowdlend.core.permissions import UserRole
from crowdlend.modules.users.models import User
from crowdlend.modules.admin.services import AdminService
from crowdlend.modules.loans.models import LoanStatus
from crowdlend.modules.loans import schemas
from crowdlend.modules.loans.services import LoanService

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])


@router.post("/", response_model=schemas.LoanResponse, status_code=status.HTTP_201_CREATED)
async def request_loan(
    data: schemas.LoanCreate,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(require_roles(UserRole.BORROWER))
):
    """
    Request a loan.

    - Starts in REQUESTED and waits for admin approval
    """
    return await LoanService(db, cache).request(current_user.id, data)


@router.get("/", response_model=schemas.LoanListResponse)
async def list_loans(
    status: Optional[LoanStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Browse loans, e.g. ``status=FUNDED`` for loans open to lenders"""
    loans, total = await LoanService(db, cache).list_loans(status, page, page_size)
    return {"loans": loans, "total": total, "page": page, "page_size": page_size}


@router.get("/user/my-loans", response_model=schemas.LoanListResponse)
async def get_my_loans(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    loans, total = await LoanService(db, cache).list_for_borrower(current_user.id, page, page_size)
    return {"loans": loans, "total": total, "page": page, "page_size": page_size}


@router.post("/calculate", response_model=schemas.LoanCalculatorResponse)
async def calculate_emi(data: schemas.LoanCalculatorRequest):
    """Quote an EMI schedule without creating a loan"""
    return LoanService.calculate(data.principal, data.interest_rate, data.duration)


@router.get("/{loan_id}", response_model=schemas.LoanResponse)
async def get_loan(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    return await LoanService(db, cache).get_view(loan_id)


@router.post("/{loan_id}/approve", response_model=schemas.LoanResponse)
async def decide_loan(
    loan_id: int,
    data: schemas.LoanDecision,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Approve (opens funding) or reject a requested loan (admin only, audited)"""
    return await AdminService(db, cache).decide_loan(admin.id, loan_id, data.approved, data.reason)


@router.post("/{loan_id}/fund", response_model=schemas.LoanResponse)
async def fund_loan(
    loan_id: int,
    data: schemas.LoanFundRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(require_roles(UserRole.LENDER))
):
    """
    Contribute toward an approved loan.

    - Funding may not exceed the remaining requested amount
    - The contribution that completes funding activates the loan
    """
    return await LoanService(db, cache).fund(
        loan_id, current_user.id, data.amount, data.external_reference
    )


@router.get("/{loan_id}/fundings", response_model=List[schemas.LoanFundingResponse])
async def get_loan_fundings(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    return await LoanService(db, cache).fundings(loan_id)


@router.get("/{loan_id}/repayments", response_model=List[schemas.LoanRepaymentResponse])
async def get_loan_repayments(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    """Repayment schedule, ordered by installment number"""
    return await LoanService(db, cache).repayments(loan_id)


@router.post(
    "/{loan_id}/repayments/{repayment_id}/pay",
    response_model=schemas.LoanRepaymentResponse
)
async def pay_installment(
    loan_id: int,
    repayment_id: int,
    data: schemas.RepaymentRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: User = Depends(get_current_active_user)
):
    """Pay one installment (borrower only)"""
    return await LoanService(db, cache).record_payment(
        loan_id,
        repayment_id,
        data.amount,
        payer_id=current_user.id,
        external_reference=data.external_reference
    )
