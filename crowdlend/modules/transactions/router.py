from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_current_active_user
from crowdlend.modules.users.models import User
from crowdlend.modules.transactions.models import TransactionType
from crowdlend.modules.transactions.schemas import TransactionListResponse
from crowdlend.modules.transactions.services import TransactionService

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


@router.get("/", response_model=TransactionListResponse)
async def read_my_transactions(
    transaction_type: Optional[TransactionType] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Ledger history of the current user"""
    transactions, total = await TransactionService(db).list_for_user(
        current_user.id, transaction_type, page, page_size
    )
    return {"transactions": transactions, "total": total, "page": page, "page_size": page_size}
