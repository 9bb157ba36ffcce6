from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from crowdlend.modules.transactions.models import TransactionType, TransactionStatus


class TransactionResponse(BaseModel):
    id: int
    reference_code: str
    transaction_type: TransactionType
    status: TransactionStatus
    amount: Decimal
    user_id: int
    reference_type: str
    reference_id: int
    external_reference: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    page: int
    page_size: int
