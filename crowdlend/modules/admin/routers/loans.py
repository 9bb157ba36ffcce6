"""
Admin loan oversight endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_cache, require_admin
from crowdlend.modules.admin.schemas import OptionalReasonRequest
from crowdlend.modules.admin.services import AdminService
from crowdlend.modules.loans.schemas import LoanDecision, LoanResponse
from crowdlend.modules.users.models import User

router = APIRouter(prefix="/loans", tags=["admin-loans"])


@router.get("/pending", response_model=List[LoanResponse])
async def list_pending_loans(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Loans awaiting an approval decision"""
    return await AdminService(db, cache).pending_loans()


@router.post("/{loan_id}/decision", response_model=LoanResponse)
async def decide_loan(
    loan_id: int,
    data: LoanDecision,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    return await AdminService(db, cache).decide_loan(admin.id, loan_id, data.approved, data.reason)


@router.post("/{loan_id}/default", response_model=LoanResponse)
async def default_loan(
    loan_id: int,
    data: OptionalReasonRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Mark an active loan as defaulted"""
    return await AdminService(db, cache).default_loan(admin.id, loan_id, data.reason)
